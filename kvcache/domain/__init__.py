"""Domain Layer: cache contract, value objects and exceptions.

Has no dependency on the infrastructure layer.
"""

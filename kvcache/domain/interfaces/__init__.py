"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes) that infrastructure components
must implement. Application logic depends on these interfaces, not
concrete implementations.
"""

"""Cache backend implementations.

Provides the file-per-entry store, its serializers and the factory that
builds a backend from a configuration descriptor.
"""

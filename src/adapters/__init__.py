"""Adapters layer for the EH Doctor catalog.

This module contains input/output adapters that interface with external systems.
Storage adapters implement the KeyValueStoragePort defined in the domain layer;
exporters turn the catalog Document into other file formats.
"""

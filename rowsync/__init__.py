"""Selective row synchronization between an editable table form and a server.

Only rows the user modified or added are validated and persisted; unchanged
rows travel on the wire but are never examined.
"""

__version__ = "0.1.0"

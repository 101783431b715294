"""Transaction linker: import CSV statements and link marketplace charges to order items."""

__version__ = "0.1.0"

"""Client library for the WELDR image-builder API over a Unix domain socket."""

__version__ = "35.9"
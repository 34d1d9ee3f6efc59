"""Simulated kernel: process scheduling, paged address translation, TLB, page cache and I/O devices."""

__version__ = "0.1.0"
"""Kernel settings read from its configuration file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union


@dataclass
class KernelConfig:
    """Everything the kernel reads from its configuration file."""

    memory_ip: str
    memory_port: str
    dispatch_port: str
    interrupt_port: str
    io_port: str
    long_term_algorithm: str
    short_term_algorithm: str
    suspension_ms: int
    alpha: float
    initial_estimate: float
    log_level: str


_KEYS = {
    "IP_MEMORIA": ("memory_ip", str),
    "PUERTO_MEMORIA": ("memory_port", str),
    "PUERTO_ESCUCHA_DISPATCH": ("dispatch_port", str),
    "PUERTO_ESCUCHA_INTERRUPT": ("interrupt_port", str),
    "PUERTO_ESCUCHA_IO": ("io_port", str),
    "ALGORITMO_INGRESO_A_READY": ("long_term_algorithm", str),
    "ALGORITMO_CORTO_PLAZO": ("short_term_algorithm", str),
    "TIEMPO_SUSPENSION": ("suspension_ms", int),
    "ALFA": ("alpha", float),
    "ESTIMACION_INICIAL": ("initial_estimate", float),
    "LOG_LEVEL": ("log_level", str),
}


def _read_properties(path: Union[str, Path]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    with open(path, encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip()
    return values


def load_kernel_config(path: Union[str, Path]) -> KernelConfig:
    """Read a KEY=VALUE file into a KernelConfig.

    Raises FileNotFoundError when the file is absent and ValueError when a key
    is missing or a number does not parse.
    """
    values = _read_properties(path)
    if "IP_MEMORIA" not in values:
        raise ValueError(f"{path}: missing IP_MEMORIA")
    fields = {}
    for key, (field, kind) in _KEYS.items():
        if key not in values:
            raise ValueError(f"{path}: missing {key}")
        try:
            fields[field] = kind(values[key])
        except ValueError:
            raise ValueError(f"{path}: invalid value for {key}: {values[key]!r}") from None
    return KernelConfig(**fields)
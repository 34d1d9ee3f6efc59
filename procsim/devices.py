"""I/O devices known to the kernel: their instances and waiting processes."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Hashable, List, Optional

log = logging.getLogger(__name__)


@dataclass
class IoInstance:
    """One connected instance of a device, identified by its connection."""

    link: Hashable
    busy: bool = False
    pid: Optional[int] = None


@dataclass
class BlockedIo:
    """A process waiting for a free instance of a device."""

    pid: int
    duration: int


@dataclass
class Device:
    """A named device with its connected instances and its waiting queue."""

    name: str
    instances: List[IoInstance] = field(default_factory=list)
    waiting: Deque[BlockedIo] = field(default_factory=deque)

    def acquire(self) -> Optional[IoInstance]:
        """Mark the first free instance busy and return it, or None if all are busy."""
        log.debug("Hay %d instancias", len(self.instances))
        for instance in self.instances:
            if not instance.busy:
                instance.busy = True
                log.debug("Instancia libre encontrada en %r", instance.link)
                return instance
        log.debug("No se encontro una instancia libre")
        return None

    def find(self, link: Hashable) -> Optional[IoInstance]:
        """Return the instance connected through *link*, or None."""
        return next((instance for instance in self.instances if instance.link == link), None)

    def release(self, link: Hashable) -> Optional[IoInstance]:
        """Mark the instance behind *link* free again; returns it, or None if unknown."""
        instance = self.find(link)
        if instance is not None:
            instance.busy = False
            instance.pid = None
        return instance


class DeviceRegistry:
    """All connected devices, by name."""

    def __init__(self) -> None:
        self._devices: Dict[str, Device] = {}
        self.lock = threading.RLock()

    def register(self, name: str, link: Hashable) -> Device:
        """Add an instance of device *name* reachable through *link*."""
        with self.lock:
            device = self._devices.get(name)
            if device is None:
                device = Device(name)
                self._devices[name] = device
            device.instances.append(IoInstance(link))
        log.info("Se registró la conexión %r para dispositivo IO [%s]", link, name)
        return device

    def get(self, name: str) -> Optional[Device]:
        """Return the device called *name*, or None when none is connected."""
        with self.lock:
            return self._devices.get(name)

    def name_of(self, link: Hashable) -> Optional[str]:
        """Return the name of the device that owns the instance behind *link*."""
        with self.lock:
            for name, device in self._devices.items():
                if device.find(link) is not None:
                    return name
        return None

    def disconnect(self, link: Hashable) -> List[int]:
        """Remove the instance behind *link*.

        Returns the PIDs that can no longer be served and must finish: the
        process the instance was busy with, and, when it was the device's last
        instance, every process waiting for the device, in queue order. The
        device itself is forgotten once no instance is left.
        """
        with self.lock:
            name = self.name_of(link)
            if name is None:
                log.debug("No se encontro un IO con conexión %r", link)
                return []
            log.info("Se desconecto un dispositivo [%s] de conexión %r", name, link)
            device = self._devices[name]
            stranded: List[int] = []

            instance = device.find(link)
            if instance is not None:
                if instance.busy and instance.pid is not None:
                    stranded.append(instance.pid)
                device.instances.remove(instance)

            if not device.instances:
                log.info("No quedan instancias para el dispositivo [%s]", name)
                del self._devices[name]
                stranded.extend(blocked.pid for blocked in device.waiting)
                device.waiting.clear()
            return stranded

    def __contains__(self, name: object) -> bool:
        with self.lock:
            return name in self._devices
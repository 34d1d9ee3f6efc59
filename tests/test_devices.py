import pytest

from procsim.devices import BlockedIo, Device, DeviceRegistry, IoInstance


@pytest.fixture
def registry():
    return DeviceRegistry()


def test_register_creates_device(registry):
    device = registry.register("DISCO", "sock-a")
    assert "DISCO" in registry
    assert registry.get("DISCO") is device
    assert [i.link for i in device.instances] == ["sock-a"]


def test_register_same_name_adds_instance(registry):
    first = registry.register("DISCO", "sock-a")
    second = registry.register("DISCO", "sock-b")
    assert first is second
    assert [i.link for i in first.instances] == ["sock-a", "sock-b"]


def test_unknown_device(registry):
    assert registry.get("TECLADO") is None
    assert "TECLADO" not in registry


def test_new_instance_is_free(registry):
    device = registry.register("DISCO", "sock-a")
    instance = device.instances[0]
    assert instance.busy is False
    assert instance.pid is None


def test_acquire_takes_instances_in_order(registry):
    device = registry.register("DISCO", "sock-a")
    registry.register("DISCO", "sock-b")
    first = device.acquire()
    second = device.acquire()
    assert first.link == "sock-a"
    assert second.link == "sock-b"
    assert first.busy and second.busy
    assert device.acquire() is None


def test_release_frees_instance(registry):
    device = registry.register("DISCO", "sock-a")
    instance = device.acquire()
    instance.pid = 3
    released = device.release("sock-a")
    assert released is instance
    assert released.busy is False
    assert released.pid is None
    assert device.acquire() is instance


def test_release_unknown_link():
    device = Device("DISCO", [IoInstance("sock-a")])
    assert device.release("sock-z") is None


def test_find(registry):
    device = registry.register("DISCO", "sock-a")
    registry.register("DISCO", "sock-b")
    assert device.find("sock-b").link == "sock-b"
    assert device.find("sock-z") is None


def test_name_of(registry):
    registry.register("DISCO", "sock-a")
    registry.register("RED", "sock-b")
    assert registry.name_of("sock-b") == "RED"
    assert registry.name_of("sock-a") == "DISCO"
    assert registry.name_of("sock-z") is None


def test_disconnect_unknown_link(registry):
    registry.register("DISCO", "sock-a")
    assert registry.disconnect("sock-z") == []
    assert "DISCO" in registry


def test_disconnect_idle_instance_keeps_device(registry):
    device = registry.register("DISCO", "sock-a")
    registry.register("DISCO", "sock-b")
    device.waiting.append(BlockedIo(4, 100))
    assert registry.disconnect("sock-a") == []
    assert "DISCO" in registry
    assert [i.link for i in device.instances] == ["sock-b"]
    assert [b.pid for b in device.waiting] == [4]


def test_disconnect_busy_instance_returns_its_pid(registry):
    device = registry.register("DISCO", "sock-a")
    registry.register("DISCO", "sock-b")
    instance = device.acquire()
    instance.pid = 7
    assert registry.disconnect("sock-a") == [7]
    assert "DISCO" in registry


def test_disconnect_busy_without_pid_strands_nothing(registry):
    device = registry.register("DISCO", "sock-a")
    registry.register("DISCO", "sock-b")
    device.acquire()
    assert registry.disconnect("sock-a") == []


def test_disconnect_last_instance_drops_device_and_waiters(registry):
    device = registry.register("DISCO", "sock-a")
    instance = device.acquire()
    instance.pid = 1
    device.waiting.append(BlockedIo(2, 50))
    device.waiting.append(BlockedIo(5, 80))
    assert registry.disconnect("sock-a") == [1, 2, 5]
    assert "DISCO" not in registry
    assert registry.get("DISCO") is None
    assert len(device.waiting) == 0
    assert registry.name_of("sock-a") is None


def test_register_after_device_dropped_starts_fresh(registry):
    old = registry.register("DISCO", "sock-a")
    old.waiting.append(BlockedIo(2, 50))
    registry.disconnect("sock-a")
    new = registry.register("DISCO", "sock-c")
    assert new is not old
    assert len(new.waiting) == 0
    assert [i.link for i in new.instances] == ["sock-c"]
"""Device tree of a plant view.

A plant view holds controllers, each controller holds main feeds, each main
feed holds devices, and devices may have assigned sub-devices (for example
Modbus slaves behind a gateway). These helpers walk that hierarchy.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass

from .models import Device, PlantStatus, PlantViewResponse


@dataclass(frozen=True)
class DeviceNode:
    """A device together with its position in the tree.

    Attributes:
        device: The device itself
        controller_uid: Controller the device belongs to
        main_feed_uid: Main feed the device hangs off
        parent_uid: Uid of the device it is assigned to, None for top-level devices
        depth: 0 for main feed devices, 1 for their assigned devices, ...
    """

    device: Device
    controller_uid: str
    main_feed_uid: str
    parent_uid: str | None
    depth: int


def _walk(
    device: Device,
    controller_uid: str,
    main_feed_uid: str,
    parent_uid: str | None,
    depth: int,
) -> Iterator[DeviceNode]:
    yield DeviceNode(device, controller_uid, main_feed_uid, parent_uid, depth)
    for child in device.assigned_devices:
        yield from _walk(child, controller_uid, main_feed_uid, device.uid, depth + 1)


def iter_devices(view: PlantViewResponse) -> Iterator[DeviceNode]:
    """Depth-first walk over every device of a plant view."""
    for controller in view.controllers:
        for feed in controller.controller_main_feeds:
            for device in feed.main_feed_devices:
                yield from _walk(device, controller.uid, feed.uid, None, 0)


def count_devices(view: PlantViewResponse) -> int:
    """Total number of devices, sub-devices included."""
    return sum(1 for _ in iter_devices(view))


def find_device(view: PlantViewResponse, uid: str) -> DeviceNode | None:
    """Locate a device anywhere in the tree."""
    for node in iter_devices(view):
        if node.device.uid == uid:
            return node
    return None


def status_summary(view: PlantViewResponse) -> dict[PlantStatus, int]:
    """Number of devices per status (every status present, zero if unused)."""
    counts = Counter(node.device.device_status for node in iter_devices(view))
    return {status: counts.get(status, 0) for status in PlantStatus}


def default_expanded(view: PlantViewResponse) -> set[str]:
    """Uids shown expanded initially: all controllers and main feeds.

    Devices with sub-devices start collapsed.
    """
    expanded: set[str] = set()
    for controller in view.controllers:
        expanded.add(controller.uid)
        expanded.update(feed.uid for feed in controller.controller_main_feeds)
    return expanded


__all__ = [
    "DeviceNode",
    "count_devices",
    "default_expanded",
    "find_device",
    "iter_devices",
    "status_summary",
]

"""Live browser tab access: control protocol, notification bus, in-process window."""

from tabweave.runtime.tabs.base import TabControl
from tabweave.runtime.tabs.events import TabEventBus
from tabweave.runtime.tabs.simulated import SimulatedWindow

__all__ = ["SimulatedWindow", "TabControl", "TabEventBus"]

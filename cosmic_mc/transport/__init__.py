"""Transport module: ModuleList scheduler (serial and threaded)."""

from cosmic_mc.transport.module_list import ModuleList

__all__ = ["ModuleList"]

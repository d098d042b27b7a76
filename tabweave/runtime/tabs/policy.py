"""URL classification shared by the reconciler, the switch coordinator and the managers."""

from __future__ import annotations

from dataclasses import dataclass

from tabweave.runtime.models.tab import Tab
from tabweave.runtime.settings import TabweaveSettings


@dataclass(frozen=True)
class UrlPolicy:
    anchor_url: str
    internal_prefixes: tuple[str, ...] = ()

    @classmethod
    def from_settings(cls, settings: TabweaveSettings) -> UrlPolicy:
        return cls(anchor_url=settings.anchor_url, internal_prefixes=tuple(settings.internal_url_prefixes))

    def is_anchor(self, url: str | None) -> bool:
        return url == self.anchor_url

    def is_internal(self, url: str | None) -> bool:
        return bool(url) and url.startswith(self.internal_prefixes)

    def is_savable(self, url: str | None) -> bool:
        """Whether ``url`` may appear in a workspace's saved-tab list."""
        return bool(url) and not self.is_anchor(url) and not self.is_internal(url)

    def is_trackable(self, tab: Tab) -> bool:
        """Whether a live tab takes part in reconciliation.

        User-pinned tabs are left alone in both directions.
        """
        return not tab.pinned and self.is_savable(tab.url)

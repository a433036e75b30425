import logging
import re
from types import MappingProxyType
from typing import Iterable, Mapping

from .config import Settings
from .errors import UnknownGroup

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def _split_addresses(addresses: str | Iterable[str]) -> list[str]:
    if isinstance(addresses, str):
        addresses = addresses.split(",")
    return [a.strip() for a in addresses if a and a.strip()]


class RecipientRegistry:
    """Static mapping of recipient group names to email addresses.

    Built once at startup from configuration and never mutated afterwards.
    """

    def __init__(self, groups: Mapping[str, str | Iterable[str]]):
        parsed: dict[str, tuple[str, ...]] = {}
        for name, addresses in groups.items():
            emails = _split_addresses(addresses)
            if not emails:
                raise ValueError(f"Recipient group {name!r} has no addresses")
            invalid = [e for e in emails if not EMAIL_RE.match(e)]
            if invalid:
                raise ValueError(
                    f"Recipient group {name!r} has invalid addresses: {', '.join(invalid)}"
                )
            parsed[name] = tuple(emails)
        self._groups = MappingProxyType(parsed)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecipientRegistry":
        groups: dict[str, str | Iterable[str]] = {}
        if settings.recipient_emails.strip():
            groups["default"] = settings.recipient_emails
        groups.update(settings.recipient_groups)
        registry = cls(groups)
        logger.info(f"Loaded {len(registry.group_names)} recipient group(s)")
        return registry

    @property
    def group_names(self) -> tuple[str, ...]:
        return tuple(sorted(self._groups))

    def resolve(self, group_name: str) -> list[str]:
        try:
            return list(self._groups[group_name])
        except KeyError:
            raise UnknownGroup(group_name) from None

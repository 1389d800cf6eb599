"""Display notifications — fire-and-forget zone events and debug strings.

The strategy core never waits on a display.  ``LogDisplay`` is the default
sink and simply writes to the ``zonetrade.display`` logger.
"""

import logging
from typing import Protocol, runtime_checkable

from zonetrade.strategy.models import Zone

logger = logging.getLogger("zonetrade.display")


@runtime_checkable
class DisplayProtocol(Protocol):
    """Receiver for zone lifecycle notifications."""

    def zone_created(self, zone: Zone) -> None:
        ...

    def zone_invalidated(self, zone: Zone) -> None:
        ...

    def zone_touched(self, zone: Zone) -> None:
        ...

    def debug(self, message: str) -> None:
        ...


class LogDisplay:
    """Writes zone notifications to the log."""

    def zone_created(self, zone: Zone) -> None:
        logger.info(
            "Zone #%d created: %s %.5f–%.5f (anchor %s)",
            zone.zone_id, zone.direction, zone.low, zone.high, zone.anchor_time,
        )

    def zone_invalidated(self, zone: Zone) -> None:
        logger.info(
            "Zone #%d invalidated at %s%s",
            zone.zone_id, zone.invalidated_at,
            " (breaker ready)" if zone.breaker_ready else "",
        )

    def zone_touched(self, zone: Zone) -> None:
        logger.info("Zone #%d touched", zone.zone_id)

    def debug(self, message: str) -> None:
        logger.debug(message)

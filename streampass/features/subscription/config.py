"""Construction-time configuration of a pass collection."""
from dataclasses import dataclass, field
from typing import List, Optional

from streampass.core.config import Settings, settings


@dataclass(frozen=True)
class SubscriptionConfig:
    protocol_host: str
    accepted_token: str
    owner: str
    receiver: str = "streampass"
    name: str = "StreamPass"
    symbol: str = "PASS"
    initial_tiers: List[int] = field(default_factory=lambda: [0])

    @classmethod
    def from_settings(cls, settings_obj: Optional[Settings] = None) -> "SubscriptionConfig":
        cfg = settings_obj or settings
        return cls(
            protocol_host=cfg.STREAM_PROTOCOL_HOST or "",
            accepted_token=cfg.STREAM_ACCEPTED_TOKEN or "",
            owner=cfg.PASS_OWNER or "",
            receiver=cfg.STREAM_RECEIVER,
            name=cfg.PASS_NAME,
            symbol=cfg.PASS_SYMBOL,
            initial_tiers=list(cfg.PASS_TIERS),
        )

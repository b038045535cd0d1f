"""Settlement configuration — injected explicitly instead of read ad hoc."""

from dataclasses import dataclass

from config.settings import settings
from src.ec_common.enums import PaymentMode


@dataclass(frozen=True)
class SettlementConfig:
    mode: PaymentMode = PaymentMode.PRODUCTION
    commission_bps: int = 2000

    def __post_init__(self) -> None:
        if not 0 <= self.commission_bps <= 10_000:
            raise ValueError(f"commission_bps must be in [0, 10000], got {self.commission_bps}")

    @property
    def is_sandbox(self) -> bool:
        return self.mode == PaymentMode.SANDBOX

    @classmethod
    def from_settings(cls) -> "SettlementConfig":
        return cls(mode=settings.PAYMENT_MODE, commission_bps=settings.PLATFORM_COMMISSION_BPS)

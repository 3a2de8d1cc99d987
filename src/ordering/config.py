"""Provider and store settings.

Settings are plain frozen dataclasses built once from the environment and
passed into the services that need them. Nothing else in the context reads
provider credentials from ``os.environ``.
"""

import os
from dataclasses import dataclass, field
from enum import Enum


class GatewayEnvironment(Enum):
    UAT = "UAT"
    PROD = "PROD"


_GATEWAY_BASE_URLS = {
    GatewayEnvironment.PROD: "https://api.phonepe.com/apis/hermes",
    GatewayEnvironment.UAT: "https://api-preprod.phonepe.com/apis/hermes",
}


@dataclass(frozen=True)
class GatewayConfig:
    """Credentials and endpoints for the payment gateway."""

    merchant_id: str
    salt_key: str = field(repr=False)
    salt_index: int = 1
    environment: GatewayEnvironment = GatewayEnvironment.UAT
    redirect_url: str | None = None
    callback_url: str | None = None
    timeout_seconds: float = 10.0

    @property
    def base_url(self) -> str:
        return _GATEWAY_BASE_URLS[self.environment]

    @property
    def is_configured(self) -> bool:
        """True when the merchant credentials needed to verify callbacks are set."""
        return bool(self.merchant_id and self.salt_key)

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        environment = os.environ.get("PHONEPE_ENVIRONMENT", GatewayEnvironment.UAT.value).upper()
        return cls(
            merchant_id=os.environ.get("PHONEPE_MERCHANT_ID", ""),
            salt_key=os.environ.get("PHONEPE_SALT_KEY", ""),
            salt_index=int(os.environ.get("PHONEPE_SALT_INDEX", "1")),
            environment=GatewayEnvironment(environment),
            redirect_url=os.environ.get("PHONEPE_REDIRECT_URL"),
            callback_url=os.environ.get("PHONEPE_CALLBACK_URL"),
            timeout_seconds=float(os.environ.get("PHONEPE_TIMEOUT_SECONDS", "10")),
        )


@dataclass(frozen=True)
class PickupLocation:
    name: str = "Your Company"
    address: str = "Company Address"
    city: str = "Mumbai"
    state: str = "Maharashtra"
    pincode: str = "400001"
    phone: str = "1234567890"
    email: str = "info@company.com"


@dataclass(frozen=True)
class CarrierConfig:
    """Credentials and pickup details for the shipping carrier."""

    api_key: str = field(default="", repr=False)
    client_code: str = ""
    warehouse_id: str = ""
    base_url: str = "https://staging-express.delhivery.com"
    timeout_seconds: float = 10.0
    pickup: PickupLocation = field(default_factory=PickupLocation)

    @classmethod
    def from_env(cls) -> "CarrierConfig":
        defaults = PickupLocation()
        pickup = PickupLocation(
            name=os.environ.get("COMPANY_NAME", defaults.name),
            address=os.environ.get("COMPANY_ADDRESS", defaults.address),
            city=os.environ.get("COMPANY_CITY", defaults.city),
            state=os.environ.get("COMPANY_STATE", defaults.state),
            pincode=os.environ.get("COMPANY_PINCODE", defaults.pincode),
            phone=os.environ.get("COMPANY_PHONE", defaults.phone),
            email=os.environ.get("COMPANY_EMAIL", defaults.email),
        )
        return cls(
            api_key=os.environ.get("DELHIVERY_API_KEY", ""),
            client_code=os.environ.get("DELHIVERY_CLIENT_CODE", ""),
            warehouse_id=os.environ.get("DELHIVERY_WAREHOUSE_ID", ""),
            base_url=os.environ.get("DELHIVERY_BASE_URL", cls.base_url),
            timeout_seconds=float(os.environ.get("DELHIVERY_TIMEOUT_SECONDS", "10")),
            pickup=pickup,
        )


@dataclass(frozen=True)
class StoreConfig:
    """Store-wide pricing and operations policy."""

    tax_rate_percent: float = 18.0
    currency: str = "INR"
    admin_email: str = "admin@example.com"
    bulk_shipment_batch_size: int = 5
    bulk_shipment_batch_delay: float = 1.0

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            tax_rate_percent=float(os.environ.get("STORE_TAX_RATE_PERCENT", cls.tax_rate_percent)),
            currency=os.environ.get("STORE_CURRENCY", cls.currency),
            admin_email=os.environ.get("ADMIN_EMAIL", cls.admin_email),
            bulk_shipment_batch_size=int(os.environ.get("BULK_SHIPMENT_BATCH_SIZE", cls.bulk_shipment_batch_size)),
            bulk_shipment_batch_delay=float(os.environ.get("BULK_SHIPMENT_BATCH_DELAY", cls.bulk_shipment_batch_delay)),
        )


_store_config: StoreConfig | None = None


def get_store_config() -> StoreConfig:
    """Return the active store configuration, loading it from the environment once."""
    global _store_config
    if _store_config is None:
        _store_config = StoreConfig.from_env()
    return _store_config


def set_store_config(config: StoreConfig) -> None:
    """Override the active store configuration (useful for tests)."""
    global _store_config
    _store_config = config


def reset_store_config() -> None:
    global _store_config
    _store_config = None

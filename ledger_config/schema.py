"""
Ledger configuration schema (``ledger_config.schema``).

Frozen dataclasses describing the tunable behaviour of the invoicing core.
Field defaults are the production defaults; ``defaults.yaml`` restates them
so an operator can copy and edit it.
"""

from dataclasses import dataclass, field
from typing import Any, Self

from ledger_kernel.domain.overpayment import OverpaymentPolicy
from ledger_kernel.logging_config import get_logger

logger = get_logger("config.schema")

DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Yakıt",
    "Yemek",
    "Malzeme",
    "İletişim",
    "Ofis",
    "Ulaşım",
    "Diğer",
)


@dataclass(frozen=True)
class NumberingConfig:
    """Invoice number collision handling."""

    max_attempts: int = 10
    max_backoff_ms: int = 100

    def __post_init__(self):
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValueError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if isinstance(self.max_backoff_ms, bool) or not isinstance(self.max_backoff_ms, int):
            raise ValueError(
                f"max_backoff_ms must be an integer, got {self.max_backoff_ms!r}"
            )
        if self.max_backoff_ms < 0:
            raise ValueError(f"max_backoff_ms cannot be negative, got {self.max_backoff_ms}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        unknown = set(data) - {"max_attempts", "max_backoff_ms"}
        if unknown:
            raise ValueError(f"Unknown numbering settings: {sorted(unknown)}")
        return cls(**data)


@dataclass(frozen=True)
class LedgerConfig:
    """
    Configuration for the invoicing core.

    Override at instantiation or load from YAML:

        config = LedgerConfig(
            overpayment_policy=OverpaymentPolicy.REJECT,
            numbering=NumberingConfig(max_backoff_ms=0),
        )
    """

    numbering: NumberingConfig = field(default_factory=NumberingConfig)

    # Payments larger than the open balance
    overpayment_policy: OverpaymentPolicy = OverpaymentPolicy.ALLOW_AND_FLAG

    # Invoices must name an existing customer of the tenant
    require_invoice_customer: bool = True

    # Reports
    top_customers_limit: int = 5
    expense_categories: tuple[str, ...] = DEFAULT_EXPENSE_CATEGORIES

    def __post_init__(self):
        if not isinstance(self.numbering, NumberingConfig):
            raise ValueError("numbering must be a NumberingConfig")
        try:
            object.__setattr__(
                self, "overpayment_policy", OverpaymentPolicy(self.overpayment_policy)
            )
        except ValueError:
            valid = [p.value for p in OverpaymentPolicy]
            raise ValueError(
                f"overpayment_policy must be one of {valid}, "
                f"got '{self.overpayment_policy}'"
            ) from None
        if not isinstance(self.require_invoice_customer, bool):
            raise ValueError("require_invoice_customer must be a boolean")
        if isinstance(self.top_customers_limit, bool) or not isinstance(
            self.top_customers_limit, int
        ):
            raise ValueError("top_customers_limit must be an integer")
        if self.top_customers_limit < 1:
            raise ValueError(
                f"top_customers_limit must be >= 1, got {self.top_customers_limit}"
            )

        categories = tuple(self.expense_categories)
        if any(not isinstance(c, str) or not c.strip() for c in categories):
            raise ValueError("expense_categories cannot contain blank names")
        if len(categories) != len(set(categories)):
            raise ValueError("expense_categories must be unique")
        object.__setattr__(self, "expense_categories", categories)

        logger.debug(
            "ledger_config_initialized",
            extra={
                "overpayment_policy": self.overpayment_policy.value,
                "require_invoice_customer": self.require_invoice_customer,
                "numbering_max_attempts": self.numbering.max_attempts,
                "numbering_max_backoff_ms": self.numbering.max_backoff_ms,
                "top_customers_limit": self.top_customers_limit,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the production defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a dictionary (e.g. parsed YAML)."""
        data = dict(data)
        unknown = set(data) - {
            "numbering",
            "overpayment_policy",
            "require_invoice_customer",
            "top_customers_limit",
            "expense_categories",
        }
        if unknown:
            raise ValueError(f"Unknown ledger settings: {sorted(unknown)}")
        if "numbering" in data:
            numbering = data["numbering"] or {}
            if not isinstance(numbering, dict):
                raise ValueError("numbering must be a mapping")
            data["numbering"] = NumberingConfig.from_dict(numbering)
        if "expense_categories" in data:
            data["expense_categories"] = tuple(data["expense_categories"] or ())
        return cls(**data)

    def as_dict(self) -> dict[str, Any]:
        return {
            "numbering": {
                "max_attempts": self.numbering.max_attempts,
                "max_backoff_ms": self.numbering.max_backoff_ms,
            },
            "overpayment_policy": self.overpayment_policy.value,
            "require_invoice_customer": self.require_invoice_customer,
            "top_customers_limit": self.top_customers_limit,
            "expense_categories": list(self.expense_categories),
        }

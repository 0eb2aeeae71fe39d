"""Generation run configuration."""

from datetime import date, timedelta

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_ACCOUNT_COUNT = 100_000
DEFAULT_MAX_BALANCE = 100_000
DEFAULT_HORIZON_DAYS = 30
DEFAULT_DAILY_TRANSACTION_MIN = 400_000
DEFAULT_DAILY_TRANSACTION_MAX = 1_000_000
DEFAULT_BATCH_SIZE = 1000


class GenerationConfig(BaseModel):
    """Options consumed by a single generation run.

    Invalid combinations are rejected at construction time, before any
    storage is touched.
    """

    model_config = ConfigDict(frozen=True)

    account_count: int = Field(
        default=DEFAULT_ACCOUNT_COUNT,
        gt=0,
        description="Number of member accounts (N)",
    )

    max_balance: int = Field(
        default=DEFAULT_MAX_BALANCE,
        ge=0,
        description="Upper bound of the target balance spread",
    )

    horizon_days: int = Field(
        default=DEFAULT_HORIZON_DAYS,
        gt=0,
        description="Number of simulated days, ending on the end date",
    )

    daily_transaction_min: int = Field(
        default=DEFAULT_DAILY_TRANSACTION_MIN,
        ge=0,
        description="Lower bound (inclusive) of events generated per day",
    )

    daily_transaction_max: int = Field(
        default=DEFAULT_DAILY_TRANSACTION_MAX,
        ge=0,
        description="Upper bound (inclusive) of events generated per day",
    )

    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        gt=0,
        description="Records buffered before each bulk insert",
    )

    seed: int | None = Field(
        default=None,
        description="Random seed; None draws fresh OS entropy",
    )

    start_date: date | None = Field(
        default=None,
        description="First simulated day; defaults so the horizon ends today",
    )

    @model_validator(mode="after")
    def _check_daily_range(self) -> "GenerationConfig":
        if self.daily_transaction_min > self.daily_transaction_max:
            raise ValueError(
                "daily_transaction_min "
                f"({self.daily_transaction_min}) must not exceed "
                f"daily_transaction_max ({self.daily_transaction_max})"
            )
        return self

    @property
    def daily_transaction_range(self) -> tuple[int, int]:
        return self.daily_transaction_min, self.daily_transaction_max

    def resolve_start_date(self, today: date | None = None) -> date:
        """First day of the horizon.

        Args:
            today: Reference day for the default horizon. Defaults to today.
        """
        if self.start_date is not None:
            return self.start_date
        today = today or date.today()
        return today - timedelta(days=self.horizon_days - 1)

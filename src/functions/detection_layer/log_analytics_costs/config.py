"""Configuration schema for the Log Analytics costs module.

Pricing constants and classification thresholds are kept here so they can
be adjusted per deployment without touching the calculation logic. The
configuration arrives with each analysis request (``configuration`` in the
request body) and is validated when the module is invoked.
"""

from pydantic import BaseModel, Field, model_validator


class TierPricing(BaseModel):
    """Pay-As-You-Go and plan pricing used for cost estimates (USD).

    Basic and Auxiliary plans are expressed as a ratio of the Analytics
    price, so a regional price change only needs ``analyticsPerGB``.
    """

    analytics_per_gb: float = Field(
        2.76,
        gt=0,
        alias="analyticsPerGB",
        description="Analytics plan ingestion price per GB",
    )

    basic_ratio: float = Field(
        0.5,
        gt=0,
        le=1,
        alias="basicRatio",
        description="Basic plan price as a fraction of Analytics",
    )

    auxiliary_ratio: float = Field(
        0.15,
        gt=0,
        le=1,
        alias="auxiliaryRatio",
        description="Auxiliary plan price as a fraction of Analytics",
    )

    commitment_per_gb: float = Field(
        2.30,
        gt=0,
        alias="commitmentPerGB",
        description="Effective per-GB price of the 100 GB/day commitment tier",
    )

    commitment_threshold_gb_per_day: float = Field(
        100.0,
        gt=0,
        alias="commitmentThresholdGBPerDay",
        description="Daily ingestion at which the commitment tier pays off",
    )

    approaching_commitment_gb_per_day: float = Field(
        50.0,
        gt=0,
        alias="approachingCommitmentGBPerDay",
        description="Daily ingestion at which the commitment tier is worth planning for",
    )

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _check_ordering(self) -> "TierPricing":
        if self.auxiliary_ratio > self.basic_ratio:
            raise ValueError("auxiliaryRatio must not exceed basicRatio")
        if self.approaching_commitment_gb_per_day > self.commitment_threshold_gb_per_day:
            raise ValueError(
                "approachingCommitmentGBPerDay must not exceed commitmentThresholdGBPerDay"
            )
        return self


class LogAnalyticsCostsConfig(BaseModel):
    """Configuration for the Log Analytics costs module.

    Example request fragment:
        {
            "configuration": {
                "pricing": {"analyticsPerGB": 2.99},
                "frequentQueryThreshold": 5,
                "topTablesCount": 10
            }
        }
    """

    pricing: TierPricing = Field(default_factory=TierPricing)

    frequent_query_threshold: float = Field(
        5.0,
        ge=0,
        alias="frequentQueryThreshold",
        description="Average queries per day at or above which a table stays on Analytics",
    )

    auxiliary_query_threshold: float = Field(
        1.0,
        ge=0,
        alias="auxiliaryQueryThreshold",
        description="Custom tables queried less often than this per day qualify for Auxiliary",
    )

    minimal_ingestion_gb: float = Field(
        1.0,
        ge=0,
        alias="minimalIngestionGB",
        description="30-day ingestion below which no optimization is recommended",
    )

    top_tables_count: int = Field(
        10,
        ge=1,
        alias="topTablesCount",
        description="Number of tables in the headline top-tables list",
    )

    minimum_candidate_gb: float = Field(
        0.01,
        ge=0,
        alias="minimumCandidateGB",
        description="Tables below this 30-day volume are not worth a plan change",
    )

    excessive_heartbeats_per_hour: float = Field(
        70.0,
        gt=0,
        alias="excessiveHeartbeatsPerHour",
        description="Heartbeats per hour above which a computer is reported",
    )

    custom_table_suffix: str = Field(
        "_CL",
        min_length=1,
        alias="customTableSuffix",
        description="Name suffix identifying custom tables",
    )

    max_names_per_table: int = Field(
        3,
        ge=1,
        alias="maxNamesPerTable",
        description="Alert or dashboard names listed per table before summarizing",
    )

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _check_thresholds(self) -> "LogAnalyticsCostsConfig":
        if self.auxiliary_query_threshold > self.frequent_query_threshold:
            raise ValueError("auxiliaryQueryThreshold must not exceed frequentQueryThreshold")
        return self


def parse_config(configuration: dict | None) -> LogAnalyticsCostsConfig:
    """Parse and validate module configuration.

    Args:
        configuration: Raw configuration dict from the request.

    Returns:
        Validated LogAnalyticsCostsConfig instance.

    Raises:
        ValidationError: If configuration is invalid.
    """
    return LogAnalyticsCostsConfig(**(configuration or {}))

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "STONEVERSE_"}

    # App
    debug: bool = False
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    # Personal income and LMNP (BIC reel) rates
    income_tax_rate: Decimal = Decimal("0.30")
    social_charges_rate: Decimal = Decimal("0.172")

    # Corporate tax (IS): reduced rate up to the threshold, standard above
    corporate_reduced_rate: Decimal = Decimal("0.15")
    corporate_standard_rate: Decimal = Decimal("0.25")
    corporate_reduced_threshold: Decimal = Decimal("42500")

    # Flat tax on distributed dividends (PFU)
    dividend_tax_rate: Decimal = Decimal("0.128")
    dividend_social_charges_rate: Decimal = Decimal("0.172")

    # Early repayment indemnity (IRA): min(N months of interest, pct of balance)
    penalty_interest_months: int = 6
    penalty_balance_pct: Decimal = Decimal("0.03")

    # IRR solver
    irr_lower_bound: float = -0.99
    irr_upper_bound: float = 10.0
    irr_tolerance: float = 1e-6
    irr_max_iterations: int = 200
    irr_bracket_steps: int = 200

    # Alert thresholds (caller-facing, never alter computed values)
    ltv_alert_threshold: Decimal = Decimal("0.85")
    dscr_alert_threshold: Decimal = Decimal("1.20")


settings = Settings()

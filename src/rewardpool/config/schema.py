"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

ActionType = Literal["stake", "unstake", "claim", "set_rate", "fund", "emergency_unstake"]

ACCOUNT_ACTIONS = ("stake", "unstake", "claim", "emergency_unstake")
AMOUNT_ACTIONS = ("stake", "unstake", "fund")


class PoolSettings(BaseModel):
    """Pool parameters."""
    pool_id: str = Field(default="main", min_length=1, description="Pool identifier")
    emission_rate: int = Field(ge=0, description="Reward units emitted per unit time")
    budget_mode: Literal["tracked", "balance"] = Field(
        default="tracked",
        description="Tracked internal budget or live custody reward balance"
    )
    initial_funding: int = Field(ge=0, default=0, description="Reward funded at creation time")
    funder: str = Field(default="treasury", min_length=1, description="Account that funds rewards")


class AccountSettings(BaseModel):
    """Starting balances of a participant."""
    name: str = Field(min_length=1, description="Account identifier")
    stake_balance: int = Field(ge=0, default=0, description="Stake resource minted at start")
    reward_balance: int = Field(ge=0, default=0, description="Reward resource minted at start")


class ScenarioStep(BaseModel):
    """One scripted ledger operation."""
    at: int = Field(ge=0, description="Absolute time at which the step runs")
    action: ActionType = Field(description="Operation to perform")
    account: Optional[str] = Field(default=None, description="Acting account")
    amount: Optional[int] = Field(default=None, gt=0, description="Amount for stake/unstake/fund")
    rate: Optional[int] = Field(default=None, ge=0, description="New emission rate for set_rate")

    @model_validator(mode='after')
    def validate_required_fields(self):
        """Ensure each action carries the fields it needs."""
        if self.action in ACCOUNT_ACTIONS and self.account is None:
            raise ValueError(f"Step '{self.action}' at t={self.at} requires an account")
        if self.action in AMOUNT_ACTIONS and self.amount is None:
            raise ValueError(f"Step '{self.action}' at t={self.at} requires an amount")
        if self.action == "set_rate" and self.rate is None:
            raise ValueError(f"Step 'set_rate' at t={self.at} requires a rate")
        return self


class Expectation(BaseModel):
    """Expected ledger values at a point in the scenario.

    Without `after_step` the check runs once every step with time <= `at`
    has executed.
    """
    at: int = Field(ge=0, description="Time at which pending rewards are evaluated")
    after_step: Optional[int] = Field(
        default=None, ge=0,
        description="Check right after this step index instead"
    )
    pending: Dict[str, int] = Field(default_factory=dict, description="Expected pending reward per account")
    claimed: Dict[str, int] = Field(
        default_factory=dict,
        description="Expected cumulative reward paid out per account"
    )


class SimulationSettings(BaseModel):
    """Randomized interleaving parameters."""
    num_accounts: int = Field(gt=0, le=1000, default=5, description="Number of random stakers")
    num_steps: int = Field(gt=0, default=200, description="Operations per run")
    max_time_step: int = Field(ge=0, default=20, description="Maximum clock advance between operations")
    max_amount: int = Field(gt=0, default=1_000, description="Maximum stake/unstake amount")
    max_emission_rate: int = Field(ge=0, default=500, description="Upper bound for random rate changes")
    initial_funding: int = Field(ge=0, default=1_000_000, description="Reward funded before the run")
    runs: int = Field(gt=0, default=10, description="Number of randomized runs")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")


class Config(BaseModel):
    """Complete configuration for a ledger scenario."""
    pool: PoolSettings
    accounts: List[AccountSettings] = Field(default_factory=list)
    steps: List[ScenarioStep] = Field(default_factory=list)
    expectations: List[Expectation] = Field(default_factory=list)
    simulation: SimulationSettings = Field(default_factory=SimulationSettings)

    @field_validator('steps')
    @classmethod
    def validate_step_order(cls, v):
        """Ensure step times never go backwards."""
        for previous, current in zip(v, v[1:]):
            if current.at < previous.at:
                raise ValueError(
                    f"Steps must be ordered by time: t={current.at} follows t={previous.at}"
                )
        return v

    @model_validator(mode='after')
    def validate_account_names(self):
        """Ensure steps and expectations only reference declared accounts."""
        declared = {account.name for account in self.accounts}
        declared.add(self.pool.funder)
        for step in self.steps:
            if step.account is not None and step.account not in declared:
                raise ValueError(f"Step at t={step.at} references unknown account '{step.account}'")
        for expectation in self.expectations:
            if expectation.after_step is not None and expectation.after_step >= len(self.steps):
                raise ValueError(
                    f"Expectation at t={expectation.at} refers to missing step {expectation.after_step}"
                )
            unknown = (set(expectation.pending) | set(expectation.claimed)) - declared
            if unknown:
                raise ValueError(
                    f"Expectation at t={expectation.at} references unknown accounts: {sorted(unknown)}"
                )
        return self

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()

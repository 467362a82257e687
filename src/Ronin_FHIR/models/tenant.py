"""Read-only tenant descriptor passed into every transform call."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TenantContext(BaseModel):
    """Minimal tenant configuration needed by the transformation core."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    mnemonic: str = Field(min_length=1, description="Short key used for id and reference prefixing")
    mrn_system: str | None = Field(
        default=None, description="Identifier system under which the tenant publishes MRNs"
    )

    def prefix(self, raw_id: str) -> str:
        """Return ``raw_id`` prefixed with the tenant mnemonic."""
        return f"{self.mnemonic}-{raw_id}"

    def is_prefixed(self, value: str) -> bool:
        return value.startswith(f"{self.mnemonic}-")


__all__ = ["TenantContext"]

"""Collection configuration: the write-once parameters of a mint.

A collection is described by a YAML (or JSON) document:

    name: Example
    max_supply: 10000
    unit_price: "50000000000000000"     # wei; strings keep large values exact
    public_limit: 5
    presale_limit: 1
    admin: "0x..."
    payment_policy: exact                # or refund
    phase:
      policy: threshold                  # or admin
      public_sale_at: 1767225600
    allowlist:
      mode: merkle                       # or explicit
      root: "0x..."

Loading is two-stage: structural validation against
schemas/collection-config.schema.json, then semantic validation in
CollectionConfig.__post_init__. Both raise ConfigError with every problem
found.
"""

from __future__ import annotations

import json
import pathlib
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft202012Validator

from mintgate.guards import PaymentPolicy
from mintgate.validation import Validators


SCHEMA_PATH = pathlib.Path(__file__).resolve().parent / "schemas" / "collection-config.schema.json"


class ConfigError(Exception):
    """Invalid collection configuration."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class PhasePolicyKind(Enum):
    THRESHOLD = "threshold"
    ADMIN = "admin"


class AllowlistMode(Enum):
    MERKLE = "merkle"
    EXPLICIT = "explicit"


def load_yaml(path: pathlib.Path) -> Any:
    """Load YAML file with UTF-8 encoding."""
    return yaml.safe_load(pathlib.Path(path).read_text(encoding="utf-8"))


def load_json(path: pathlib.Path) -> Any:
    """Load JSON file with UTF-8 encoding."""
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def schema_validator() -> Draft202012Validator:
    return Draft202012Validator(load_json(SCHEMA_PATH))


def validate_document(doc: Any) -> List[str]:
    """Structural errors for a collection document, sorted for stable output."""
    errors = []
    for e in sorted(schema_validator().iter_errors(doc), key=str):
        errors.append(f"{list(e.absolute_path)}: {e.message}")
    return errors


@dataclass(frozen=True)
class CollectionConfig:
    """Immutable parameters of a collection."""
    max_supply: int
    unit_price: int
    public_limit: int
    admin: str
    presale_limit: int = 1
    phase_policy: PhasePolicyKind = PhasePolicyKind.THRESHOLD
    public_sale_at: Optional[int] = None
    allowlist_mode: AllowlistMode = AllowlistMode.MERKLE
    allowlist_root: Optional[str] = None
    payment_policy: PaymentPolicy = PaymentPolicy.EXACT
    metadata_base: str = ""
    name: str = "collection"

    def __post_init__(self):
        errors: List[str] = []

        def check(result, attr: Optional[str] = None) -> None:
            if result.is_valid:
                if attr:
                    object.__setattr__(self, attr, result.sanitized_value)
            else:
                errors.extend(str(e) for e in result.errors)

        check(Validators.validate_uint(self.max_supply, "max_supply", min_value=1), "max_supply")
        check(Validators.validate_uint(self.unit_price, "unit_price"), "unit_price")
        check(Validators.validate_uint(self.public_limit, "public_limit"), "public_limit")
        check(Validators.validate_uint(self.presale_limit, "presale_limit", min_value=1), "presale_limit")
        check(Validators.validate_address(self.admin, "admin"), "admin")

        if self.phase_policy is PhasePolicyKind.THRESHOLD:
            if self.public_sale_at is None:
                errors.append("public_sale_at: required for the threshold phase policy")
            else:
                check(Validators.validate_uint(self.public_sale_at, "public_sale_at"), "public_sale_at")

        if self.allowlist_mode is AllowlistMode.MERKLE:
            if self.allowlist_root is None:
                errors.append("allowlist_root: required for merkle allowlists")
            else:
                result = Validators.validate_hash32(self.allowlist_root, "allowlist_root")
                if result.is_valid:
                    object.__setattr__(self, "allowlist_root", "0x" + result.sanitized_value.hex())
                else:
                    errors.extend(str(e) for e in result.errors)
        elif self.allowlist_root is not None:
            errors.append("allowlist_root: not used by explicit allowlists")

        if errors:
            raise ConfigError("invalid collection config", errors)

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "CollectionConfig":
        """Build from a document, validating its structure first."""
        errors = validate_document(doc)
        if errors:
            raise ConfigError("collection document does not match schema", errors)

        phase = doc["phase"]
        allowlist = doc["allowlist"]
        return cls(
            name=doc.get("name", "collection"),
            max_supply=doc["max_supply"],
            unit_price=doc["unit_price"],
            public_limit=doc["public_limit"],
            presale_limit=doc.get("presale_limit", 1),
            admin=doc["admin"],
            metadata_base=doc.get("metadata_base", ""),
            payment_policy=PaymentPolicy(doc.get("payment_policy", "exact")),
            phase_policy=PhasePolicyKind(phase["policy"]),
            public_sale_at=phase.get("public_sale_at"),
            allowlist_mode=AllowlistMode(allowlist["mode"]),
            allowlist_root=allowlist.get("root"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Inverse of from_dict. Large integers are written as strings."""
        phase: Dict[str, Any] = {"policy": self.phase_policy.value}
        if self.public_sale_at is not None:
            phase["public_sale_at"] = self.public_sale_at
        allowlist: Dict[str, Any] = {"mode": self.allowlist_mode.value}
        if self.allowlist_root is not None:
            allowlist["root"] = self.allowlist_root
        return {
            "name": self.name,
            "max_supply": self.max_supply,
            "unit_price": str(self.unit_price),
            "public_limit": self.public_limit,
            "presale_limit": self.presale_limit,
            "admin": self.admin,
            "metadata_base": self.metadata_base,
            "payment_policy": self.payment_policy.value,
            "phase": phase,
            "allowlist": allowlist,
        }


def load_collection_config(path: pathlib.Path) -> CollectionConfig:
    """Load a collection config from a .yaml/.yml or .json file."""
    path = pathlib.Path(path)
    if not path.exists():
        raise ConfigError(f"collection config not found: {path}")

    try:
        doc = load_json(path) if path.suffix == ".json" else load_yaml(path)
    except (yaml.YAMLError, json.JSONDecodeError) as ex:
        raise ConfigError(f"unable to parse collection config {path}: {ex}") from ex

    if not isinstance(doc, dict):
        raise ConfigError(f"collection config must be a mapping: {path}")
    return CollectionConfig.from_dict(doc)

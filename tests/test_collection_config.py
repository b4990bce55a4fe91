import json

import pytest
import yaml

from mintgate.authorizer import MintAuthorizer, MintRequest
from mintgate.collection import (
    AllowlistMode,
    CollectionConfig,
    ConfigError,
    PhasePolicyKind,
    load_collection_config,
    validate_document,
)
from mintgate.guards import PaymentPolicy
from mintgate.interfaces import InMemoryLedger, InMemoryTransfer, ManualClock
from mintgate.merkle import AllowlistTree
from mintgate.phase import Phase

ADMIN = "0x" + "a" * 40
ROOT = AllowlistTree.build(["0x" + "1" * 40, "0x" + "2" * 40]).root_hex


def _doc(**overrides):
    doc = {
        "name": "genesis",
        "max_supply": 10000,
        "unit_price": "50000000000000000",
        "public_limit": 5,
        "admin": ADMIN,
        "phase": {"policy": "threshold", "public_sale_at": 1700000000},
        "allowlist": {"mode": "merkle", "root": ROOT},
    }
    doc.update(overrides)
    return doc


class TestCollectionDocument:

    def test_valid_document(self):
        assert validate_document(_doc()) == []
        config = CollectionConfig.from_dict(_doc())
        assert config.unit_price == 50000000000000000
        assert config.public_sale_at == 1700000000
        assert config.allowlist_root == ROOT
        assert config.payment_policy is PaymentPolicy.EXACT
        assert config.presale_limit == 1

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigError) as exc:
            CollectionConfig.from_dict(_doc(royalties=5))
        assert any("royalties" in e for e in exc.value.errors)

    def test_missing_required_fields(self):
        doc = _doc()
        del doc["admin"]
        del doc["phase"]
        errors = validate_document(doc)
        assert len(errors) == 2

    @pytest.mark.parametrize("bad", [-1, "12abc", 1.5, True])
    def test_bad_uint(self, bad):
        assert validate_document(_doc(max_supply=bad))

    def test_bad_enums(self):
        assert validate_document(_doc(payment_policy="tip"))
        assert validate_document(_doc(phase={"policy": "lunar"}))
        assert validate_document(_doc(allowlist={"mode": "vibes"}))

    def test_root_without_prefix_is_normalized(self):
        config = CollectionConfig.from_dict(_doc(allowlist={"mode": "merkle", "root": ROOT[2:].upper()}))
        assert config.allowlist_root == ROOT

    def test_round_trip(self):
        config = CollectionConfig.from_dict(_doc(payment_policy="refund", metadata_base="ipfs://x/"))
        assert CollectionConfig.from_dict(config.to_dict()) == config


class TestCollectionSemantics:

    def test_threshold_requires_public_sale_at(self):
        with pytest.raises(ConfigError) as exc:
            CollectionConfig.from_dict(_doc(phase={"policy": "threshold"}))
        assert exc.value.errors == ["public_sale_at: required for the threshold phase policy"]

    def test_admin_policy_without_time(self):
        config = CollectionConfig.from_dict(_doc(phase={"policy": "admin"}))
        assert config.phase_policy is PhasePolicyKind.ADMIN
        assert config.public_sale_at is None

    def test_merkle_requires_root(self):
        with pytest.raises(ConfigError):
            CollectionConfig.from_dict(_doc(allowlist={"mode": "merkle"}))

    def test_explicit_rejects_root(self):
        with pytest.raises(ConfigError):
            CollectionConfig.from_dict(_doc(allowlist={"mode": "explicit", "root": ROOT}))
        config = CollectionConfig.from_dict(_doc(allowlist={"mode": "explicit"}))
        assert config.allowlist_mode is AllowlistMode.EXPLICIT

    def test_all_problems_reported_together(self):
        with pytest.raises(ConfigError) as exc:
            CollectionConfig(
                max_supply=0,
                unit_price=-1,
                public_limit=5,
                admin="nobody",
                public_sale_at=None,
            )
        assert len(exc.value.errors) == 5

    def test_config_is_immutable(self):
        config = CollectionConfig.from_dict(_doc())
        with pytest.raises(AttributeError):
            config.max_supply = 1


class TestLoadCollectionConfig:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "collection.yaml"
        path.write_text(yaml.safe_dump(_doc()), encoding="utf-8")
        config = load_collection_config(path)
        assert config.name == "genesis"
        assert config.admin == ADMIN

    def test_load_json(self, tmp_path):
        path = tmp_path / "collection.json"
        path.write_text(json.dumps(_doc(phase={"policy": "admin"})), encoding="utf-8")
        assert load_collection_config(path).phase_policy is PhasePolicyKind.ADMIN

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_collection_config(tmp_path / "absent.yaml")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "collection.yaml"
        path.write_text("max_supply: [1, 2\n", encoding="utf-8")
        with pytest.raises(ConfigError) as exc:
            load_collection_config(path)
        assert isinstance(exc.value.__cause__, yaml.YAMLError)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "collection.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_collection_config(path)

    def test_authorizer_from_file(self, tmp_path):
        path = tmp_path / "collection.yaml"
        path.write_text(yaml.safe_dump(_doc(phase={"policy": "threshold", "public_sale_at": 100})), encoding="utf-8")
        authorizer = MintAuthorizer.from_file(
            path, InMemoryLedger(), InMemoryTransfer(), clock=ManualClock(100)
        )
        assert authorizer.current_phase() is Phase.PUBLIC
        receipt = authorizer.public_mint(
            MintRequest.direct("0x" + "3" * 40, value="100000000000000000", quantity=2)
        )
        assert receipt.total_issued == 2

import hashlib

import pytest

from mintgate.merkle import (
    AllowlistTree,
    ExplicitAllowlist,
    MerkleAllowlist,
    encode_identity,
    leaf_hash,
    node_hash,
    process_proof,
    verify_proof,
)
from mintgate.validation import ValidationError


def _addr(i: int) -> str:
    return "0x" + f"{i:040x}"


MEMBERS = [_addr(i) for i in range(1, 12)]


class TestLeafAndNodeHashing:

    def test_identity_is_abi_word_encoded(self):
        encoded = encode_identity(_addr(0xBEEF))
        assert len(encoded) == 32
        assert encoded[:12] == bytes(12)
        assert encoded[-2:] == bytes.fromhex("beef")

    def test_leaf_is_double_sha256(self):
        word = encode_identity(_addr(7))
        expected = hashlib.sha256(hashlib.sha256(word).digest()).digest()
        assert leaf_hash(_addr(7)) == expected

    def test_leaf_ignores_address_case(self):
        mixed = "0xAbCdEf" + "0" * 34
        assert leaf_hash(mixed) == leaf_hash(mixed.lower())

    def test_node_hash_orders_pair_by_value(self):
        low = bytes(31) + b"\x01"
        high = b"\xff" + bytes(31)
        assert node_hash(low, high) == node_hash(high, low)
        assert node_hash(low, high) == hashlib.sha256(low + high).digest()

    def test_positional_order_would_differ(self):
        low = bytes(31) + b"\x01"
        high = b"\xff" + bytes(31)
        assert node_hash(high, low) != hashlib.sha256(high + low).digest()

    def test_invalid_identity_raises_on_encode(self):
        with pytest.raises(ValidationError):
            encode_identity("not-an-address")


class TestAllowlistTree:

    def test_every_member_verifies(self):
        tree = AllowlistTree.build(MEMBERS)
        for member in MEMBERS:
            assert verify_proof(member, tree.proof_for(member), tree.root)

    def test_hex_proofs_and_root_verify(self):
        tree = AllowlistTree.build(MEMBERS)
        member = MEMBERS[4]
        assert verify_proof(member, tree.proof_hex(member), tree.root_hex)
        assert verify_proof(member, tree.proof_hex(member), tree.root.hex())

    def test_single_member_tree_has_empty_proof(self):
        tree = AllowlistTree.build([_addr(1)])
        assert tree.root == leaf_hash(_addr(1))
        assert tree.proof_for(_addr(1)) == []
        assert verify_proof(_addr(1), [], tree.root)

    def test_duplicates_are_collapsed(self):
        tree = AllowlistTree.build([_addr(1), _addr(1), _addr(2).upper().replace("0X", "0x")])
        assert tree.members == [_addr(1), _addr(2)]
        assert tree.root == node_hash(leaf_hash(_addr(1)), leaf_hash(_addr(2)))

    def test_odd_sized_levels(self):
        for size in (2, 3, 5, 7, 9):
            members = MEMBERS[:size]
            tree = AllowlistTree.build(members)
            for member in members:
                proof = tree.proof_for(member)
                assert process_proof(leaf_hash(member), proof) == tree.root

    def test_root_is_independent_of_input_order(self):
        assert AllowlistTree.build(MEMBERS).root == AllowlistTree.build(list(reversed(MEMBERS))).root

    def test_empty_allowlist_rejected(self):
        with pytest.raises(ValueError):
            AllowlistTree.build([])

    def test_proof_for_non_member(self):
        tree = AllowlistTree.build(MEMBERS)
        with pytest.raises(KeyError):
            tree.proof_for(_addr(999))

    def test_contains(self):
        tree = AllowlistTree.build(MEMBERS)
        assert MEMBERS[0] in tree
        assert _addr(999) not in tree
        assert "garbage" not in tree


class TestVerifyProof:

    def test_non_member_rejected_with_member_proof(self):
        tree = AllowlistTree.build(MEMBERS)
        assert not verify_proof(_addr(999), tree.proof_for(MEMBERS[0]), tree.root)

    def test_tampered_sibling_rejected(self):
        tree = AllowlistTree.build(MEMBERS)
        proof = tree.proof_for(MEMBERS[3])
        proof[0] = b"\x00" * 32
        assert not verify_proof(MEMBERS[3], proof, tree.root)

    def test_truncated_proof_rejected(self):
        tree = AllowlistTree.build(MEMBERS)
        proof = tree.proof_for(MEMBERS[3])
        assert not verify_proof(MEMBERS[3], proof[:-1], tree.root)

    def test_wrong_root_rejected(self):
        tree = AllowlistTree.build(MEMBERS)
        other = AllowlistTree.build(MEMBERS[:-1])
        assert not verify_proof(MEMBERS[0], tree.proof_for(MEMBERS[0]), other.root)

    def test_malformed_inputs_are_rejections_not_errors(self):
        tree = AllowlistTree.build(MEMBERS)
        proof = tree.proof_for(MEMBERS[0])
        assert not verify_proof("0x1234", proof, tree.root)
        assert not verify_proof(MEMBERS[0], ["zz" * 32], tree.root)
        assert not verify_proof(MEMBERS[0], [b"short"], tree.root)
        assert not verify_proof(MEMBERS[0], proof, "not-a-root")
        assert not verify_proof(MEMBERS[0], None, tree.root)

    def test_verification_is_repeatable(self):
        tree = AllowlistTree.build(MEMBERS)
        proof = tree.proof_for(MEMBERS[2])
        first = verify_proof(MEMBERS[2], proof, tree.root)
        second = verify_proof(MEMBERS[2], proof, tree.root)
        assert first is True and second is True


class TestAllowlistVerifiers:

    def test_merkle_allowlist(self):
        tree = AllowlistTree.build(MEMBERS)
        verifier = MerkleAllowlist(tree.root_hex)
        assert verifier.root == tree.root
        assert verifier.verify(MEMBERS[5], tree.proof_for(MEMBERS[5]))
        assert not verifier.verify(MEMBERS[5], [])

    def test_merkle_allowlist_rejects_bad_root(self):
        with pytest.raises(ValidationError):
            MerkleAllowlist("0x1234")

    def test_explicit_allowlist_populate_is_idempotent(self):
        allowlist = ExplicitAllowlist()
        assert allowlist.populate([_addr(1), _addr(2)]) == 2
        assert allowlist.populate([_addr(2), _addr(3)]) == 1
        assert len(allowlist) == 3
        assert allowlist.is_member(_addr(2))
        assert allowlist.verify(_addr(3), proof=None)
        assert not allowlist.verify(_addr(4))

    def test_explicit_allowlist_rejects_bad_batch_atomically(self):
        allowlist = ExplicitAllowlist([_addr(1)])
        with pytest.raises(ValidationError):
            allowlist.populate([_addr(2), "bogus"])
        assert len(allowlist) == 1
        assert not allowlist.is_member(_addr(2))

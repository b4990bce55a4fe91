"""Merkle allowlist utilities for presale membership.

This module implements the allowlist commitment used by the presale path: an
operator commits to a fixed set of identities by publishing a single 32-byte
root, and each member later proves inclusion with the sibling hashes along
its path.

Hashing:
- SHA-256
- leaf = SHA256(SHA256(abi_word(address)))
  where abi_word left-pads the 20-byte address to a 32-byte word
- node = SHA256(min(a, b) || max(a, b))
  the pair is ordered by numeric value, not by left/right position, so a proof
  is just the list of siblings with no direction bits

The double leaf hash keeps a 64-byte internal node from ever being presented
as a valid leaf.

Two interchangeable allowlist representations share the AllowlistVerifier
interface: MerkleAllowlist (root + proofs) and ExplicitAllowlist (an
admin-populated membership mapping).
"""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union

from mintgate.validation import Validators, normalize_identity, to_hash32


HashLike = Union[str, bytes]


def _sha256(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def encode_identity(identity: str) -> bytes:
    """ABI-encode an address as a single 32-byte word."""
    addr = normalize_identity(identity)
    return bytes(12) + bytes.fromhex(addr[2:])


def leaf_hash(identity: str) -> bytes:
    """Compute the allowlist leaf for an identity."""
    return _sha256(_sha256(encode_identity(identity)))


def node_hash(a: bytes, b: bytes) -> bytes:
    """Hash a sibling pair, smaller value first."""
    # Equal-length big-endian byte strings compare like the integers they encode.
    if a <= b:
        return _sha256(a + b)
    return _sha256(b + a)


def _decode_proof(proof: Sequence[HashLike]) -> Optional[List[bytes]]:
    out: List[bytes] = []
    for i, element in enumerate(proof):
        result = Validators.validate_hash32(element, f"proof[{i}]")
        if not result.is_valid:
            return None
        out.append(result.sanitized_value)
    return out


def process_proof(leaf: bytes, proof: Sequence[bytes]) -> bytes:
    """Fold a leaf with its proof elements and return the computed root."""
    cur = leaf
    for sibling in proof:
        cur = node_hash(cur, sibling)
    return cur


def verify_proof(identity: str, proof: Optional[Sequence[HashLike]], root: HashLike) -> bool:
    """Return True iff `proof` shows `identity` is committed under `root`.

    Malformed identities, proof elements or roots are a rejection, never an
    exception.
    """
    id_check = Validators.validate_address(identity)
    root_check = Validators.validate_hash32(root, "root")
    if not id_check.is_valid or not root_check.is_valid:
        return False

    decoded = _decode_proof(list(proof or []))
    if decoded is None:
        return False

    computed = process_proof(leaf_hash(id_check.sanitized_value), decoded)
    return hmac.compare_digest(computed, root_check.sanitized_value)


class AllowlistTree:
    """A committed allowlist with its full tree, for publishing roots and proofs.

    Leaves are de-duplicated and sorted. At each level adjacent nodes are
    paired; an unpaired last node is carried up unchanged.
    """

    def __init__(self, identities: Iterable[str]):
        members = sorted({normalize_identity(i) for i in identities})
        if not members:
            raise ValueError("allowlist must contain at least one identity")

        self._members: List[str] = members
        leaves = sorted(leaf_hash(m) for m in members)
        self._index: Dict[bytes, int] = {leaf: i for i, leaf in enumerate(leaves)}

        layers: List[List[bytes]] = [leaves]
        while len(layers[-1]) > 1:
            level = layers[-1]
            nxt: List[bytes] = []
            for i in range(0, len(level) - 1, 2):
                nxt.append(node_hash(level[i], level[i + 1]))
            if len(level) % 2 == 1:
                nxt.append(level[-1])
            layers.append(nxt)
        self._layers = layers

    @classmethod
    def build(cls, identities: Iterable[str]) -> "AllowlistTree":
        return cls(identities)

    @property
    def members(self) -> List[str]:
        return list(self._members)

    @property
    def root(self) -> bytes:
        return self._layers[-1][0]

    @property
    def root_hex(self) -> str:
        return "0x" + self.root.hex()

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, str):
            return False
        check = Validators.validate_address(identity)
        return check.is_valid and leaf_hash(check.sanitized_value) in self._index

    def proof_for(self, identity: str) -> List[bytes]:
        """Sibling path from the identity's leaf to the root."""
        leaf = leaf_hash(identity)
        if leaf not in self._index:
            raise KeyError(f"identity not in allowlist: {identity}")

        pos = self._index[leaf]
        path: List[bytes] = []
        for level in self._layers[:-1]:
            sibling_pos = pos ^ 1
            if sibling_pos < len(level):
                path.append(level[sibling_pos])
            pos //= 2
        return path

    def proof_hex(self, identity: str) -> List[str]:
        return ["0x" + p.hex() for p in self.proof_for(identity)]


class AllowlistVerifier(ABC):
    """Membership capability consumed by the allowlist mint path."""

    @abstractmethod
    def verify(self, identity: str, proof: Optional[Sequence[HashLike]] = None) -> bool:
        """Pure membership predicate."""
        raise NotImplementedError


class MerkleAllowlist(AllowlistVerifier):
    """Membership against a published merkle root."""

    def __init__(self, root: HashLike):
        self._root = to_hash32(root, "allowlist_root")

    @property
    def root(self) -> bytes:
        return self._root

    def verify(self, identity: str, proof: Optional[Sequence[HashLike]] = None) -> bool:
        return verify_proof(identity, proof, self._root)


class ExplicitAllowlist(AllowlistVerifier):
    """Admin-populated membership mapping. Proofs are ignored."""

    def __init__(self, identities: Iterable[str] = ()):
        self._members: Set[str] = set()
        self.populate(identities)

    def populate(self, identities: Iterable[str]) -> int:
        """Mark identities as members. Idempotent; returns how many were new."""
        normalized = [normalize_identity(i) for i in identities]
        before = len(self._members)
        self._members.update(normalized)
        return len(self._members) - before

    def is_member(self, identity: str) -> bool:
        check = Validators.validate_address(identity)
        return check.is_valid and check.sanitized_value in self._members

    def verify(self, identity: str, proof: Optional[Sequence[HashLike]] = None) -> bool:
        return self.is_member(identity)

    def __len__(self) -> int:
        return len(self._members)

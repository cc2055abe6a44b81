"""
Merkle Tree Implementation

Binary SHA-256 Merkle tree over bundle leaves.

Tree shape rules (shared by the builder and the verifier):
- Leaf nodes are hashed with a 0x00 prefix, internal nodes with 0x01
- Leaves are padded to the next power of two with ZERO_HASH leaves
- A single leaf is its own root (depth 0)
- Bit k of a leaf index gives its position at level k (0 = left child),
  so proofs carry sibling hashes only, never direction flags
"""

from __future__ import annotations

import hashlib
from typing import List, Sequence

from chugsplash.protocol.types import Hash256, bytes_to_hex, word_bytes

_ZERO_NODE = bytes(32)


# ===========================================================================
# Hash Functions
# ===========================================================================


def _hash_leaf(data: bytes) -> bytes:
    hasher = hashlib.sha256()
    hasher.update(b"\x00")  # Leaf prefix
    hasher.update(data)
    return hasher.digest()


def _hash_internal(left: bytes, right: bytes) -> bytes:
    hasher = hashlib.sha256()
    hasher.update(b"\x01")  # Internal prefix
    hasher.update(left)
    hasher.update(right)
    return hasher.digest()


def hash_leaf_data(data: bytes) -> Hash256:
    """Hash encoded action bytes as a Merkle leaf."""
    return bytes_to_hex(_hash_leaf(data))


def tree_depth(size: int) -> int:
    """Number of levels above the leaves for a tree of `size` leaves."""
    if size <= 1:
        return 0
    return (size - 1).bit_length()


def _pad_leaves(leaves: Sequence[bytes]) -> List[bytes]:
    padded = list(leaves)
    padded.extend([_ZERO_NODE] * ((1 << tree_depth(len(leaves))) - len(leaves)))
    return padded


def _next_level(level: List[bytes]) -> List[bytes]:
    return [_hash_internal(level[i], level[i + 1]) for i in range(0, len(level), 2)]


# ===========================================================================
# Merkle Tree
# ===========================================================================


class MerkleTree:
    """
    Merkle tree built once from an ordered list of leaf hashes.

    Every level is kept so proofs are read off without rehashing.
    """

    def __init__(self, leaf_hashes: Sequence[Hash256]):
        if len(leaf_hashes) == 0:
            raise ValueError("Cannot build tree with no leaves")

        self._leaf_count = len(leaf_hashes)
        level = _pad_leaves([word_bytes(h, "leaf hash") for h in leaf_hashes])
        self._levels: List[List[bytes]] = [level]
        while len(level) > 1:
            level = _next_level(level)
            self._levels.append(level)

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def depth(self) -> int:
        return len(self._levels) - 1

    @property
    def root(self) -> Hash256:
        return bytes_to_hex(self._levels[-1][0])

    def get_proof(self, index: int) -> List[Hash256]:
        """
        Sibling hashes from leaf to root for the leaf at `index`.

        Raises:
            ValueError: If index is out of range
        """
        if index < 0 or index >= self._leaf_count:
            raise ValueError(f"Invalid leaf index: {index}")

        siblings: List[Hash256] = []
        position = index
        for level in self._levels[:-1]:
            siblings.append(bytes_to_hex(level[position ^ 1]))
            position >>= 1
        return siblings


# ===========================================================================
# Functional Forms
# ===========================================================================


def compute_merkle_root(leaf_hashes: Sequence[Hash256]) -> Hash256:
    """Compute the root without keeping the tree around."""
    return MerkleTree(leaf_hashes).root


def compute_root_from_proof(leaf_hash: Hash256, index: int, siblings: Sequence[Hash256]) -> Hash256:
    """
    Fold siblings upward from a leaf using index parity.

    Raises:
        ValidationError: If a hash is malformed
    """
    node = word_bytes(leaf_hash, "leaf hash")
    position = index
    for sibling in siblings:
        sibling_bytes = word_bytes(sibling, "sibling hash")
        if position & 1:
            node = _hash_internal(sibling_bytes, node)
        else:
            node = _hash_internal(node, sibling_bytes)
        position >>= 1
    return bytes_to_hex(node)


__all__ = [
    "MerkleTree",
    "compute_merkle_root",
    "compute_root_from_proof",
    "hash_leaf_data",
    "tree_depth",
]

"""
Proof verification against an approved commitment.

Verification fails closed: any malformed or mismatching input yields False.
"""

from __future__ import annotations

import logging

from chugsplash.bundle.actions import Action, encode_action
from chugsplash.bundle.builder import ActionBundle, ActionProof
from chugsplash.bundle.tree import compute_root_from_proof, hash_leaf_data, tree_depth
from chugsplash.protocol.errors import ValidationError
from chugsplash.protocol.types import Hash256, normalize_hash

logger = logging.getLogger(__name__)


def verify_action_proof(root: Hash256, size: int, action: Action, proof: ActionProof) -> bool:
    """
    Check that `action` sits at `proof.action_index` of the bundle `(root, size)`.

    Returns:
        True if the recomputed root matches `root`
    """
    index = proof.action_index
    if size <= 0 or index < 0 or index >= size:
        return False

    if len(proof.siblings) != tree_depth(size):
        return False

    try:
        expected = normalize_hash(root)
        leaf_hash = hash_leaf_data(encode_action(action))
        candidate = compute_root_from_proof(leaf_hash, index, proof.siblings)
    except ValidationError as e:
        logger.debug("Malformed proof input: %s", e)
        return False

    return candidate == expected


def verify_bundle(bundle: ActionBundle) -> bool:
    """Check every proof of a built bundle against its own root."""
    return all(
        verify_action_proof(bundle.root, bundle.size, item.action, item.proof)
        for item in bundle.actions
    )

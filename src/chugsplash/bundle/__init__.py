"""
Action bundles: canonical actions, Merkle commitments and inclusion proofs.
"""

from chugsplash.bundle.actions import (
    Action,
    SetCodeAction,
    SetStorageAction,
    action_from_dict,
    action_from_raw,
    action_to_dict,
    encode_action,
)
from chugsplash.bundle.builder import (
    ActionBundle,
    ActionProof,
    BundleBuilder,
    BundledAction,
    build_bundle,
    get_action_bundle,
)
from chugsplash.bundle.tree import (
    MerkleTree,
    compute_merkle_root,
    compute_root_from_proof,
    hash_leaf_data,
    tree_depth,
)
from chugsplash.bundle.verifier import verify_action_proof, verify_bundle

__all__ = [
    # Actions
    "Action",
    "SetCodeAction",
    "SetStorageAction",
    "action_from_dict",
    "action_from_raw",
    "action_to_dict",
    "encode_action",
    # Bundles
    "ActionBundle",
    "ActionProof",
    "BundleBuilder",
    "BundledAction",
    "build_bundle",
    "get_action_bundle",
    # Merkle primitives
    "MerkleTree",
    "compute_merkle_root",
    "compute_root_from_proof",
    "hash_leaf_data",
    "tree_depth",
    # Verification
    "verify_action_proof",
    "verify_bundle",
]

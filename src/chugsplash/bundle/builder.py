"""
Action Bundles

Builds the offline commitment an owner approves:
- Canonical leaf per action (hash of its tagged encoding)
- Merkle root over all leaves in authoring order
- Per-action inclusion proof (index + sibling path)

The leaf order is used only to address proofs. It does not impose an
execution order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from chugsplash.bundle.actions import (
    Action,
    action_from_dict,
    action_from_raw,
    action_to_dict,
    encode_action,
)
from chugsplash.bundle.tree import MerkleTree, hash_leaf_data
from chugsplash.protocol.errors import ValidationError
from chugsplash.protocol.types import Hash256, normalize_hash

logger = logging.getLogger(__name__)


# ===========================================================================
# Action Proof
# ===========================================================================


@dataclass(frozen=True)
class ActionProof:
    """
    Inclusion proof for one action of a bundle.

    Attributes:
        action_index: Leaf index of the action
        siblings: Sibling hashes from leaf to root
    """
    action_index: int
    siblings: List[Hash256] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionIndex": self.action_index,
            "siblings": list(self.siblings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionProof":
        if not isinstance(data, dict):
            raise ValidationError("proof must be an object")

        index = data.get("actionIndex")
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError("proof actionIndex must be an integer")

        siblings = data.get("siblings", [])
        if not isinstance(siblings, list) or not all(isinstance(s, str) for s in siblings):
            raise ValidationError("proof siblings must be a list of hex strings")

        return cls(action_index=index, siblings=list(siblings))


# ===========================================================================
# Bundled Action
# ===========================================================================


@dataclass(frozen=True)
class BundledAction:
    """An action together with its leaf hash and inclusion proof."""
    action: Action
    proof: ActionProof
    leaf_hash: Hash256

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": action_to_dict(self.action),
            "proof": self.proof.to_dict(),
            "leafHash": self.leaf_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BundledAction":
        if not isinstance(data, dict) or "action" not in data or "proof" not in data:
            raise ValidationError("bundled action needs 'action' and 'proof'")

        action = action_from_dict(data["action"])
        return cls(
            action=action,
            proof=ActionProof.from_dict(data["proof"]),
            leaf_hash=data.get("leafHash") or hash_leaf_data(encode_action(action)),
        )


# ===========================================================================
# Action Bundle
# ===========================================================================


@dataclass(frozen=True)
class ActionBundle:
    """
    A built bundle: the commitment `(root, size)` plus every action's proof.

    Attributes:
        root: Merkle root the owner approves
        actions: Bundled actions in leaf order
    """
    root: Hash256
    actions: List[BundledAction]

    @property
    def size(self) -> int:
        return len(self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "size": self.size,
            "actions": [a.to_dict() for a in self.actions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActionBundle":
        """
        Raises:
            ValidationError: On missing fields, an empty bundle or a size
                that does not match the actions
        """
        if not isinstance(data, dict) or "root" not in data:
            raise ValidationError("bundle needs a 'root'")

        raw_actions = data.get("actions")
        if not isinstance(raw_actions, list) or not raw_actions:
            raise ValidationError("bundle must contain at least one action")

        actions = [BundledAction.from_dict(a) for a in raw_actions]
        size = data.get("size", len(actions))
        if size != len(actions):
            raise ValidationError(
                f"bundle size {size} does not match {len(actions)} actions"
            )
        return cls(root=normalize_hash(data["root"]), actions=actions)


# ===========================================================================
# Bundle Builder
# ===========================================================================


class BundleBuilder:
    """
    Builder for action bundles.

    Bundles are built by:
    1. Adding actions in leaf order
    2. Building the Merkle tree
    3. Reading off the root and per-action proofs

    Once built, the builder refuses further actions.
    """

    def __init__(self) -> None:
        self._actions: List[Action] = []
        self._bundle: Optional[ActionBundle] = None

    def add_action(self, action: Action) -> int:
        """
        Add an action to the bundle.

        Returns the leaf index of the action.

        Raises:
            RuntimeError: If the bundle was already built
        """
        if self._bundle is not None:
            raise RuntimeError("Cannot add actions to a built bundle")

        self._actions.append(action)
        return len(self._actions) - 1

    def add_raw_action(self, raw: Dict[str, Any]) -> int:
        """Add an action in authoring form (`code` or `key`/`value`)."""
        return self.add_action(action_from_raw(raw))

    def build(self) -> ActionBundle:
        """
        Build the Merkle tree and return the bundle.

        Raises:
            ValidationError: If no actions were added
        """
        if self._bundle is not None:
            return self._bundle

        if len(self._actions) == 0:
            raise ValidationError("Cannot build an empty bundle")

        leaf_hashes = [hash_leaf_data(encode_action(a)) for a in self._actions]
        tree = MerkleTree(leaf_hashes)

        bundled = [
            BundledAction(
                action=action,
                proof=ActionProof(action_index=i, siblings=tree.get_proof(i)),
                leaf_hash=leaf_hashes[i],
            )
            for i, action in enumerate(self._actions)
        ]

        self._bundle = ActionBundle(root=tree.root, actions=bundled)
        logger.debug(
            "Built bundle root=%s size=%d depth=%d",
            tree.root,
            tree.leaf_count,
            tree.depth,
        )
        return self._bundle


def get_action_bundle(raw_actions: Iterable[Dict[str, Any]]) -> ActionBundle:
    """Build a bundle from actions in authoring form."""
    builder = BundleBuilder()
    for raw in raw_actions:
        builder.add_raw_action(raw)
    return builder.build()


def build_bundle(actions: Iterable[Action]) -> ActionBundle:
    """Build a bundle from typed actions."""
    builder = BundleBuilder()
    for action in actions:
        builder.add_action(action)
    return builder.build()

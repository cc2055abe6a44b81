"""
Tests for the bundle Merkle tree, builder and proof verification.
"""

import hashlib
from dataclasses import replace

import pytest

from chugsplash.bundle.actions import SetCodeAction, SetStorageAction, encode_action
from chugsplash.bundle.builder import (
    ActionBundle,
    ActionProof,
    BundleBuilder,
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
from chugsplash.protocol.errors import ValidationError
from chugsplash.protocol.types import ZERO_HASH

TARGET = "0x" + "11" * 20


def _code_actions(n):
    return [SetCodeAction(target=TARGET, code=i.to_bytes(2, "big")) for i in range(n)]


def _node(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(b"\x01" + left + right).digest()


class TestTreeShape:
    @pytest.mark.parametrize(
        "size,depth",
        [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4), (16, 4), (17, 5)],
    )
    def test_depth(self, size, depth):
        assert tree_depth(size) == depth

    def test_leaf_hash_is_domain_separated(self):
        data = b"\x00\x01\x02"
        assert hash_leaf_data(data) == "0x" + hashlib.sha256(b"\x00" + data).hexdigest()
        assert hash_leaf_data(data) != "0x" + hashlib.sha256(data).hexdigest()

    def test_single_leaf_is_root(self):
        leaf = hash_leaf_data(b"only")
        tree = MerkleTree([leaf])

        assert tree.root == leaf
        assert tree.depth == 0
        assert tree.get_proof(0) == []

    def test_three_leaves_pad_with_zero_leaf(self):
        """A 3-leaf tree hashes the third leaf against a zero leaf."""
        leaves = [hash_leaf_data(bytes([i])) for i in range(3)]
        raw = [bytes.fromhex(h[2:]) for h in leaves]

        expected = _node(_node(raw[0], raw[1]), _node(raw[2], bytes(32)))

        assert compute_merkle_root(leaves) == "0x" + expected.hex()

    def test_proof_siblings_follow_index_parity(self):
        leaves = [hash_leaf_data(bytes([i])) for i in range(4)]
        raw = [bytes.fromhex(h[2:]) for h in leaves]
        tree = MerkleTree(leaves)

        proof = tree.get_proof(2)

        assert proof == [leaves[3], "0x" + _node(raw[0], raw[1]).hex()]

    def test_empty_tree_rejected(self):
        with pytest.raises(ValueError):
            MerkleTree([])

    def test_proof_index_out_of_range(self):
        tree = MerkleTree([hash_leaf_data(b"a"), hash_leaf_data(b"b")])

        with pytest.raises(ValueError):
            tree.get_proof(2)
        with pytest.raises(ValueError):
            tree.get_proof(-1)

    def test_root_from_proof_rejects_malformed_sibling(self):
        with pytest.raises(ValidationError):
            compute_root_from_proof(hash_leaf_data(b"a"), 0, ["0x1234"])


class TestBundleBuilder:
    @pytest.mark.parametrize("size", list(range(1, 18)))
    def test_every_proof_verifies(self, size):
        bundle = build_bundle(_code_actions(size))

        assert bundle.size == size
        for item in bundle.actions:
            assert len(item.proof.siblings) == tree_depth(size)
            assert verify_action_proof(bundle.root, size, item.action, item.proof)

    def test_root_is_deterministic(self):
        assert build_bundle(_code_actions(5)).root == build_bundle(_code_actions(5)).root

    def test_order_changes_root(self):
        actions = _code_actions(3)
        assert build_bundle(actions).root != build_bundle(list(reversed(actions))).root

    def test_leaf_hash_matches_encoding(self, two_action_bundle):
        for item in two_action_bundle.actions:
            assert item.leaf_hash == hash_leaf_data(encode_action(item.action))

    def test_raw_actions(self, two_action_bundle):
        first, second = two_action_bundle.actions

        assert isinstance(first.action, SetCodeAction)
        assert isinstance(second.action, SetStorageAction)
        assert first.proof.action_index == 0
        assert second.proof.action_index == 1

    def test_empty_bundle_rejected(self):
        with pytest.raises(ValidationError):
            BundleBuilder().build()

        with pytest.raises(ValidationError):
            get_action_bundle([])

    def test_builder_is_frozen_after_build(self):
        builder = BundleBuilder()
        assert builder.add_action(_code_actions(1)[0]) == 0

        bundle = builder.build()

        assert builder.build() is bundle
        with pytest.raises(RuntimeError):
            builder.add_action(_code_actions(1)[0])

    def test_bundle_dict_roundtrip(self, three_code_bundle):
        data = three_code_bundle.to_dict()

        assert data["size"] == 3
        assert ActionBundle.from_dict(data) == three_code_bundle

    def test_bundle_size_mismatch(self, three_code_bundle):
        data = three_code_bundle.to_dict()
        data["size"] = 4

        with pytest.raises(ValidationError):
            ActionBundle.from_dict(data)

    def test_bundle_from_dict_rejects_missing_fields(self, three_code_bundle):
        data = three_code_bundle.to_dict()

        with pytest.raises(ValidationError, match="root"):
            ActionBundle.from_dict({"actions": data["actions"]})

        with pytest.raises(ValidationError, match="at least one action"):
            ActionBundle.from_dict({"root": data["root"], "size": 0, "actions": []})

        with pytest.raises(ValidationError, match="proof"):
            ActionBundle.from_dict({"root": data["root"], "actions": [{"action": data["actions"][0]["action"]}]})

    def test_proof_from_dict_rejects_bool_index(self):
        with pytest.raises(ValidationError):
            ActionProof.from_dict({"actionIndex": True, "siblings": []})

        with pytest.raises(ValidationError):
            ActionProof.from_dict({"actionIndex": 0, "siblings": [1, 2]})


class TestVerifierFailsClosed:
    def test_valid_bundle(self, three_code_bundle):
        assert verify_bundle(three_code_bundle)

    def test_zero_size(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        assert not verify_action_proof(three_code_bundle.root, 0, item.action, item.proof)

    def test_index_beyond_size(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        proof = replace(item.proof, action_index=3)

        assert not verify_action_proof(three_code_bundle.root, 3, item.action, proof)

    def test_negative_index(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        proof = replace(item.proof, action_index=-1)

        assert not verify_action_proof(three_code_bundle.root, 3, item.action, proof)

    def test_wrong_sibling_count(self, three_code_bundle):
        item = three_code_bundle.actions[0]

        short = replace(item.proof, siblings=[ZERO_HASH])
        long = replace(item.proof, siblings=item.proof.siblings + [ZERO_HASH])

        assert not verify_action_proof(three_code_bundle.root, 3, item.action, short)
        assert not verify_action_proof(three_code_bundle.root, 3, item.action, long)

    def test_wrong_size_changes_depth(self, three_code_bundle):
        """A size with a different depth rejects the proof even if the root matches."""
        item = three_code_bundle.actions[0]
        assert not verify_action_proof(three_code_bundle.root, 5, item.action, item.proof)

    def test_malformed_sibling_hex(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        proof = replace(item.proof, siblings=["0xzz", item.proof.siblings[1]])

        assert not verify_action_proof(three_code_bundle.root, 3, item.action, proof)

    def test_malformed_root(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        assert not verify_action_proof("0x1234", 3, item.action, item.proof)

    def test_other_action_at_same_index(self, three_code_bundle):
        item = three_code_bundle.actions[0]
        other = three_code_bundle.actions[1].action

        assert not verify_action_proof(three_code_bundle.root, 3, other, item.proof)

import pytest
from eth_abi import encode
from eth_utils import keccak

from carnival.core.errors_core import ValidationError
from carnival.models.state_models import PrizeClaim
from carnival.services.merkle_service import (
    build_merkle_tree,
    hash_claim_leaf,
    hash_pair,
    process_proof,
    verify_proof,
)

from tests.conftest import ALICE, BOB


def leaf(n: int) -> bytes:
    return keccak(n.to_bytes(32, "big"))


def test_leaf_digest_matches_abi_encoding():
    claim = PrizeClaim(player=ALICE, letters=(1, 2, 3), tier=2, amount=500, round_id=1)
    expected = keccak(
        encode(
            ["address", "uint8[3]", "uint8", "uint256", "uint256"],
            [ALICE, [1, 2, 3], 2, 500, 1],
        )
    )
    assert hash_claim_leaf(claim) == expected


def test_leaf_digest_ignores_address_case():
    upper = PrizeClaim(player=ALICE, letters=(1, 2, 3), tier=0, amount=1, round_id=1)
    lower = PrizeClaim(player=ALICE.lower(), letters=(1, 2, 3), tier=0, amount=1, round_id=1)
    assert hash_claim_leaf(upper) == hash_claim_leaf(lower)


@pytest.mark.parametrize(
    "letters, tier, amount",
    [
        ((1, 2, 256), 0, 1),
        ((1, -1, 3), 0, 1),
        ((1, 2, 3), 300, 1),
        ((1, 2, 3), 0, -5),
    ],
)
def test_leaf_digest_rejects_values_outside_abi_types(letters, tier, amount):
    claim = PrizeClaim(player=BOB, letters=letters, tier=tier, amount=amount, round_id=1)
    with pytest.raises(ValidationError):
        hash_claim_leaf(claim)


def test_pair_hash_is_order_independent():
    a, b = leaf(1), leaf(2)
    assert hash_pair(a, b) == hash_pair(b, a)
    assert hash_pair(a, b) == keccak(min(a, b) + max(a, b))


def test_single_leaf_tree():
    tree = build_merkle_tree([leaf(7)])
    assert tree.root == leaf(7)
    assert tree.proof(leaf(7)) == []
    assert verify_proof([], tree.root, leaf(7))


def test_two_leaf_tree():
    a, b = leaf(1), leaf(2)
    tree = build_merkle_tree([a, b])
    assert tree.root == hash_pair(a, b)
    assert tree.proof(a) == [b]
    assert tree.proof(b) == [a]


def test_odd_trailing_node_is_promoted_unchanged():
    a, b, c = leaf(1), leaf(2), leaf(3)
    tree = build_merkle_tree([a, b, c])
    assert tree.root == hash_pair(hash_pair(a, b), c)
    assert tree.proof(c) == [hash_pair(a, b)]
    assert tree.proof(a) == [b, c]


@pytest.mark.parametrize("size", [2, 3, 4, 5, 8, 11])
def test_every_leaf_proves_membership(size):
    leaves = [leaf(i) for i in range(size)]
    tree = build_merkle_tree(leaves)
    for item in leaves:
        assert process_proof(tree.proof(item), item) == tree.root


def test_tampered_proof_or_leaf_fails():
    leaves = [leaf(i) for i in range(4)]
    tree = build_merkle_tree(leaves)
    proof = tree.proof(leaves[0])
    assert not verify_proof(proof[:-1], tree.root, leaves[0])
    assert not verify_proof(proof, tree.root, leaf(99))
    assert not verify_proof([leaf(98)] + proof[1:], tree.root, leaves[0])


def test_builder_rejects_bad_input():
    with pytest.raises(ValidationError):
        build_merkle_tree([])
    with pytest.raises(ValidationError):
        build_merkle_tree([b"short"])
    with pytest.raises(ValidationError):
        build_merkle_tree([leaf(1)]).proof(leaf(2))

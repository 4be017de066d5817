# -*- coding: utf-8 -*-
# carnival/services/merkle_service.py
# =============================================================================
# Назначение кода:
#   Проводной формат Merkle-обязательства Alphabet Carnival:
#   • дайджест листа заявки на приз;
#   • проверка доказательства включения;
#   • построитель дерева для authority и тестов.
#
# Канон/инварианты (формат дерева):
#   • Лист = keccak256(abi.encode(address, uint8[3], uint8, uint256, uint256))
#     над (player, letters, tier, amount, round). Листья НЕ хэшируются повторно.
#   • Узел = keccak256(min(a, b) || max(a, b)): пары упорядочиваются по байтам,
#     поэтому доказательство не несёт признаков «лево/право».
#   • Нечётный последний узел уровня поднимается на следующий уровень как
#     есть, без дублирования.
#   • Дерево из одного листа: корень = лист, доказательство пустое.
#
# Запреты:
#   • Никаких обращений к состоянию движка: только байты.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import keccak

from carnival.core.config_core import normalize_address
from carnival.core.errors_core import ValidationError
from carnival.models.state_models import PrizeClaim

LEAF_ABI_TYPES = ["address", "uint8[3]", "uint8", "uint256", "uint256"]


def hash_claim_leaf(claim: PrizeClaim) -> bytes:
    """Дайджест листа заявки. Значения вне диапазонов ABI → ValidationError."""
    try:
        player = normalize_address(claim.player)
    except ValueError:
        raise ValidationError("Invalid player address.", details={"player": claim.player})
    if len(claim.letters) != 3:
        raise ValidationError("Claim must carry exactly 3 letters.")
    try:
        encoded = encode(
            LEAF_ABI_TYPES,
            [player, list(claim.letters), claim.tier, claim.amount, claim.round_id],
        )
    except EncodingError as exc:
        raise ValidationError("Claim does not fit the leaf encoding.", details={"reason": str(exc)})
    return keccak(encoded)


def hash_pair(a: bytes, b: bytes) -> bytes:
    return keccak(a + b) if a <= b else keccak(b + a)


def process_proof(proof: Iterable[bytes], leaf: bytes) -> bytes:
    computed = leaf
    for node in proof:
        computed = hash_pair(computed, node)
    return computed


def verify_proof(proof: Iterable[bytes], root: bytes, leaf: bytes) -> bool:
    return process_proof(proof, leaf) == root


@dataclass(frozen=True)
class MerkleTree:
    """
    Дерево в формате обязательства. layers[0]: листья, layers[-1]: [корень].

    Пример:
        tree = build_merkle_tree([hash_claim_leaf(c) for c in claims])
        submit_commitment(..., root=tree.root, ...)
        claim_prize(..., proof=tree.proof(hash_claim_leaf(my_claim)))
    """

    layers: Tuple[Tuple[bytes, ...], ...]

    @property
    def root(self) -> bytes:
        return self.layers[-1][0]

    @property
    def leaves(self) -> Tuple[bytes, ...]:
        return self.layers[0]

    def proof(self, leaf: bytes) -> List[bytes]:
        """Путь соседей снизу вверх для первого вхождения листа."""
        try:
            index = self.leaves.index(leaf)
        except ValueError:
            raise ValidationError("Leaf is not part of the tree.")

        path: List[bytes] = []
        for layer in self.layers[:-1]:
            sibling = index - 1 if index % 2 else index + 1
            if sibling < len(layer):
                path.append(layer[sibling])
            index //= 2
        return path


def build_merkle_tree(leaves: Sequence[bytes]) -> MerkleTree:
    if not leaves:
        raise ValidationError("Merkle tree needs at least one leaf.")
    for leaf in leaves:
        if len(leaf) != 32:
            raise ValidationError("Merkle leaves must be 32 bytes.")

    layers: List[Tuple[bytes, ...]] = [tuple(leaves)]
    while len(layers[-1]) > 1:
        current = layers[-1]
        upper: List[bytes] = []
        for i in range(0, len(current), 2):
            if i + 1 == len(current):
                upper.append(current[i])
            else:
                upper.append(hash_pair(current[i], current[i + 1]))
        layers.append(tuple(upper))
    return MerkleTree(layers=tuple(layers))


__all__ = [
    "LEAF_ABI_TYPES",
    "hash_claim_leaf",
    "hash_pair",
    "process_proof",
    "verify_proof",
    "MerkleTree",
    "build_merkle_tree",
]

# =============================================================================
# Пояснения «для чайника»:
#   • Дерево строится так же, как merkletreejs с sortPairs: пары сортируются
#     перед хэшированием, непарный последний узел поднимается без изменений.
#   • Листья не хэшируются повторно: в дерево кладутся готовые
#     hash_claim_leaf(claim).
# =============================================================================

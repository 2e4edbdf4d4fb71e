# simreco/domain/services/fallback_svc.py
"""
Deterministic, network-free similarity scoring.

Used when the vector path is unavailable or unconfigured. Same inputs always
yield the same output, order included.
"""
from __future__ import annotations
from typing import Iterable, List, Optional, Sequence

from simreco.domain.models.product import Product, RecoItem, RecoResult
from simreco.domain.services.constants import EPS, W_CATEGORY, W_PRICE, W_RATING, W_TAGS


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()

def proximity(a: Optional[float], b: Optional[float]) -> float:
    """1 for equal values, falling to 0 as the gap reaches the larger value."""
    if a is None or b is None:
        return 0.0
    return 1.0 - min(1.0, abs(a - b) / max(a, b, EPS))

def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    sa = {_norm(t) for t in a if _norm(t)}
    sb = {_norm(t) for t in b if _norm(t)}
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)

def pair_score(src: Product, cand: Product) -> float:
    category = 1.0 if _norm(src.category) and _norm(src.category) == _norm(cand.category) else 0.0
    score = (
        W_CATEGORY * category
        + W_PRICE * proximity(src.price, cand.price)
        + W_RATING * proximity(src.rating, cand.rating)
        + W_TAGS * jaccard(src.tags, cand.tags)
    )
    return min(1.0, max(0.0, score))

def rank(items: Iterable[RecoItem], top_k: int) -> List[RecoItem]:
    """Score descending, ties by ascending product_id, at most top_k."""
    if top_k <= 0:
        return []
    return sorted(items, key=lambda i: (-i.score, i.product_id))[:top_k]

def score_similar(product: Product, candidates: Sequence[Product], top_k: int) -> RecoResult:
    seen = {product.product_id}
    items: List[RecoItem] = []
    for cand in candidates:
        if cand.product_id in seen:
            continue
        seen.add(cand.product_id)
        items.append(RecoItem(product_id=cand.product_id, score=pair_score(product, cand)))
    return RecoResult.from_items(product.product_id, rank(items, top_k))

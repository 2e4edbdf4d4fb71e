
# Heuristic fallback weights (sum to 1.0)
W_CATEGORY = 0.4   # binary: same category or not
W_PRICE = 0.3      # 1 - min(1, |p1-p2| / max(p1, p2, EPS))
W_RATING = 0.15    # same normalized-distance form as price
W_TAGS = 0.15      # Jaccard similarity of tag sets
EPS = 1e-9

# Result paths, for logging only (callers never see which one served)
PATH_VECTOR = "vector"
PATH_FALLBACK = "fallback"

# Redis lock namespace for sync runs
SYNC_LOCK_PREFIX = "sync"

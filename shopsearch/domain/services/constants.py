# Constants for search, faceting and related-product strategies.
from shopsearch.domain.models.query import RangeBucket

ACTIVE_STATUS = "active"

# Full-text field weights (path, weight); name carries the most signal
SEARCH_FIELDS = (
    ("name", 3.0),
    ("description", 1.5),
    ("short_description", 1.5),
    ("category_name", 2.0),
    ("vendor_name", 2.0),
    ("tags", 1.0),
    ("sku", 1.0),
)
NAME_AUTOCOMPLETE_BOOST = 2.0

# Autocomplete sources, in suggestion priority order
AUTOCOMPLETE_FIELDS = ("name", "category_name", "vendor_name")

# Served when the index cannot answer an autocomplete lookup
POPULAR_TERMS = (
    "t-shirts", "jeans", "shoes", "watches", "bags",
    "sunglasses", "jewelry", "home decor", "kitchen",
)

# Facet names
FACET_CATEGORIES = "categories"
FACET_VENDORS = "vendors"
FACET_PRICE_RANGES = "price_ranges"
FACET_RATINGS = "ratings"
FACET_TAGS = "tags"

PRICE_BUCKETS = (
    RangeBucket(key="Under $50", upper=50),
    RangeBucket(key="$50 - $100", lower=50, upper=100),
    RangeBucket(key="$100 - $200", lower=100, upper=200),
    RangeBucket(key="$200 - $500", lower=200, upper=500),
    RangeBucket(key="$500+", lower=500),
)

RATING_BUCKETS = (
    RangeBucket(key="Under 3.0 stars", upper=3.0),
    RangeBucket(key="3.0 - 3.5 stars", lower=3.0, upper=3.5),
    RangeBucket(key="3.5 - 4.0 stars", lower=3.5, upper=4.0),
    RangeBucket(key="4.0 - 4.5 stars", lower=4.0, upper=4.5),
    RangeBucket(key="4.5+ stars", lower=4.5),
)

# Order-history statuses that count as a purchase
PURCHASED_STATUSES = ("delivered", "shipped")

# Related-product strategy reasons
REASON_CONTENT = "Similar content and description"
REASON_BEHAVIOR = "Based on your shopping preferences"
REASON_COLLABORATIVE = "Customers who bought this also bought"
REASON_VENDOR = "From the same vendor"
REASON_TRENDING = "Trending now"

# Fields compared by the content-based strategy
CONTENT_FIELDS = ("name", "description", "short_description", "tags")

# Personalized list reasons
REASON_INTERESTS = "Similar to your interests"
REASON_PREFERENCES = "Based on your preferences"
REASON_POPULAR = "Popular choice"

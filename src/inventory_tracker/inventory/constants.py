from __future__ import annotations

# Values applied when the external catalog leaves a field out.
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_DESCRIPTION = "No description available"
DEFAULT_PRICE = 0
DEFAULT_IMAGE_URL = "https://placehold.co/150x150/cccccc/333333?text=No+Image"

# Query value meaning "every category".
ALL_CATEGORIES = "All"

RECENT_PRODUCTS_LIMIT = 5

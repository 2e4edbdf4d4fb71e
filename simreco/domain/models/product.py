from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional, List

class Product(BaseModel):
    """
    Strict product contract at the catalog boundary.
    Catalog documents use `category_id` / `current_price`; both spellings are accepted.
    """
    product_id: str = Field(min_length=1)
    name: str
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("category", "category_id"))
    price: Optional[float] = Field(default=None, validation_alias=AliasChoices("price", "current_price"))
    rating: Optional[float] = None
    tags: List[str] = []

    model_config = {"frozen": True, "populate_by_name": True}  # immuable = safe

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_list(cls, v):
        # Catalog sometimes stores null or a single comma-separated string
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

class RecoItem(BaseModel):
    product_id: str
    score: float = Field(ge=0, le=1)
    model_config = {"frozen": True} # immuable = safe

class RecoResult(BaseModel):
    source_product_id: str
    items: List[RecoItem]
    count: int
    model_config = {"frozen": True} # immuable = safe

    @classmethod
    def from_items(cls, source_product_id: str, items: List[RecoItem]) -> "RecoResult":
        return cls(source_product_id=source_product_id, items=items, count=len(items))

"""
models.py — Data Models for the Orders API

This module defines the data structures exchanged with the query proxy and with
API callers. It uses Pydantic models to validate incoming requests and the rows
returned by the store.

Models:
    - QueryResult: Reply of the query proxy (rows + affected row count).
    - ProductListing: A product joined with its inventory record.
    - NewOrderRequest: The order request payload received from a caller.
    - OrderConfirmation: Result of a successful order transaction.
    - OrderSummary: An order joined with its product, as listed.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

SOLD_OUT_LABEL = "매진"


class QueryResult(BaseModel):
    """
    Reply of the query proxy for a single statement.

    Attributes:
        rows (List[dict]): Returned rows, one mapping per row. Empty for statements without RETURNING.
        rowCount (int): Number of affected (or returned) rows.
    """
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    rowCount: Optional[int] = None

    @field_validator("rows", mode="before")
    @classmethod
    def _null_rows_as_empty(cls, value):
        return [] if value is None else value

    @property
    def row_count(self) -> int:
        if self.rowCount is None:
            return len(self.rows)
        return self.rowCount

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


class ProductListing(BaseModel):
    """
    A product with its resolved inventory fields.

    A product without an inventory record reports a stock of 0 (left join).
    """
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: str
    subtitle: Optional[str] = None
    price: Optional[str] = None
    price_numeric: int
    image: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    badge: Optional[str] = None
    stock_quantity: int = Field(default=0, ge=0)
    reserved_quantity: int = Field(default=0, ge=0)
    updated_at: Optional[str] = None

    @field_validator("stock_quantity", "reserved_quantity", mode="before")
    @classmethod
    def _missing_as_zero(cls, value):
        return 0 if value is None else value

    @property
    def stock_display(self) -> str:
        if self.stock_quantity == 0:
            return SOLD_OUT_LABEL
        return str(self.stock_quantity)

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["stock_display"] = self.stock_display
        return payload


class NewOrderRequest(BaseModel):
    """
    Represents an order request from a caller.

    Attributes:
        customerName (str): Name of the ordering customer. Must not be blank.
        productId (int | str): Identifier of the ordered product.
        quantity (int): Number of units. Must be an integer greater than zero.
    """
    customerName: StrictStr
    productId: Union[StrictInt, StrictStr]
    quantity: StrictInt = Field(..., gt=0)

    @field_validator("customerName", "productId")
    @classmethod
    def _not_blank(cls, value):
        if isinstance(value, str) and not value.strip():
            raise ValueError("must not be blank")
        return value


class OrderConfirmation(BaseModel):
    """
    Result of a successful order transaction.

    Attributes:
        id: Identifier generated by the store.
        customerName (str): Name of the customer.
        productTitle (str): Title of the ordered product.
        quantity (int): Ordered units.
        unitPrice (int): Price per unit captured when the order was placed.
        totalPrice (int): unitPrice * quantity.
        orderDate (str): Timestamp assigned by the store.
        remainingStock (int): Stock left after the decrement.
    """
    id: Union[int, str, None]
    customerName: str
    productTitle: str
    quantity: int
    unitPrice: int
    totalPrice: int
    orderDate: Optional[str] = None
    remainingStock: int


class OrderSummary(BaseModel):
    """An order row joined with its product's title, subtitle and display price."""
    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    customer_name: str
    product_title: Optional[str] = None
    product_subtitle: Optional[str] = None
    price: Optional[str] = None
    quantity: int
    unit_price: int
    total_price: int
    order_date: Optional[str] = None
    status: Optional[str] = None

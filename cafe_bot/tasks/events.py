"""
Typed input events for the customization state machine.

The state machine never parses display strings. Keyboard captions and free
text are turned into one of these events by ``tasks.parsing`` at the
boundary; API clients may also send events directly.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


NavigationTarget = Literal[
    "size",
    "sugar",
    "ice",
    "addons",
    "quantity",
    "review",
    "back",
    "confirm",
    "cancel",
    "menu",
]


class SelectProduct(BaseModel):
    kind: Literal["select_product"] = "select_product"
    product_id: int


class ChooseSize(BaseModel):
    kind: Literal["choose_size"] = "choose_size"
    size: str


class ChooseLevel(BaseModel):
    """Sugar or ice level; which one is decided by the current state."""
    kind: Literal["choose_level"] = "choose_level"
    level: str


class ToggleAddOn(BaseModel):
    kind: Literal["toggle_addon"] = "toggle_addon"
    name: str


class SetQuantity(BaseModel):
    kind: Literal["set_quantity"] = "set_quantity"
    quantity: int


class Navigate(BaseModel):
    kind: Literal["navigate"] = "navigate"
    target: NavigationTarget


InputEvent = Annotated[
    Union[SelectProduct, ChooseSize, ChooseLevel, ToggleAddOn, SetQuantity, Navigate],
    Field(discriminator="kind"),
]

from dataclasses import dataclass


@dataclass(frozen=True)
class AddOnLine:
    item_id: int
    name: str
    unit_price: float
    quantity: int
    category: str = ""

    @property
    def total(self) -> float:
        return self.unit_price * self.quantity

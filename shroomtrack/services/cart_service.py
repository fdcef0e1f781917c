"""Cart handling for the sales desk (client-local, never persisted)."""
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation

from shroomtrack.exceptions import ValidationError
from shroomtrack.utils.number_format import to_money
from shroomtrack.utils.records import require_mapping

DEFAULT_SELLING_PRICE = Decimal('15.00')


def _parse_quantity(value) -> int:
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'Invalid quantity: {value}')
    if quantity % 1 != 0:
        raise ValidationError('Quantity must be a whole number')
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')
    return int(quantity)


def _parse_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'Invalid unit price: {value}')
    if not price.is_finite() or price < 0:
        raise ValidationError('Unit price cannot be negative')
    return to_money(price)


class Cart:
    """
    Staging area for line items before a sales record is created.

    Lines are keyed by product id; adding a product that is already in the
    cart sums the quantities and keeps the most recent unit price.
    """

    def __init__(self):
        self._items = {}

    def add(self, product_id, product_label: str, quantity, unit_price) -> None:
        if product_id is None or str(product_id).strip() == '':
            raise ValidationError('Product is required')
        qty = _parse_quantity(quantity)
        price = _parse_price(unit_price)
        key = str(product_id)

        line = self._items.get(key)
        if line:
            line['quantity'] += qty
            line['unit_price'] = price
        else:
            self._items[key] = {
                'product_id': product_id,
                'product_label': product_label or key,
                'quantity': qty,
                'unit_price': price,
            }

    def remove(self, product_id) -> None:
        self._items.pop(str(product_id), None)

    def clear(self) -> None:
        self._items.clear()

    @property
    def is_empty(self) -> bool:
        return not self._items

    def lines(self) -> list:
        return [dict(line) for line in self._items.values()]

    def total(self) -> Decimal:
        return to_money(sum(
            (Decimal(line['quantity']) * line['unit_price'] for line in self._items.values()),
            Decimal('0')
        ))

    def to_dict(self) -> dict:
        """Session-friendly shape: {'items': {product_id: {...}}}."""
        return {
            'items': {
                key: {
                    'product_id': line['product_id'],
                    'label': line['product_label'],
                    'qty': line['quantity'],
                    'price': f"{line['unit_price']:.2f}",
                }
                for key, line in self._items.items()
            }
        }

    @classmethod
    def from_payload(cls, data) -> 'Cart':
        """
        Build a cart from a request payload.

        Accepts either {'items': [{'product_id', 'product_label', 'quantity', 'unit_price'}, ...]}
        or the to_dict() shape. Repeated products are merged.
        """
        cart = cls()
        items = require_mapping(data, 'Cart').get('items') or []
        if isinstance(items, Mapping):
            keyed, items = items, []
            for key, item in keyed.items():
                item = require_mapping(item, 'Cart item')
                items.append({
                    'product_id': item.get('product_id', key),
                    'product_label': item.get('label'),
                    'quantity': item.get('qty'),
                    'unit_price': item.get('price'),
                })
        elif not isinstance(items, list):
            raise ValidationError('Cart items must be a list')

        for item in items:
            item = require_mapping(item, 'Cart item')
            cart.add(
                item.get('product_id'),
                item.get('product_label'),
                item.get('quantity'),
                item.get('unit_price'),
            )
        return cart

    def __len__(self):
        return len(self._items)

    def __repr__(self):
        return f"<Cart(lines={len(self._items)}, total={self.total()})>"


def get_available_goods(finished_goods) -> list:
    """
    Sellable products for the cart picker.

    Groups finished-goods rows with stock by (recipe, packaging). Each entry
    carries the id of the first row seen as its product id, the summed
    quantity and that row's selling price (15.00 when unset).
    """
    grouped = {}
    for good in finished_goods:
        if (good.quantity or 0) <= 0:
            continue
        entry = grouped.get(good.product_key)
        if entry is None:
            entry = {
                'key': good.product_key,
                'product_id': good.id,
                'label': good.label,
                'total_qty': 0,
                'price': to_money(good.selling_price) if good.selling_price else DEFAULT_SELLING_PRICE,
            }
            grouped[good.product_key] = entry
        entry['total_qty'] += good.quantity
    return list(grouped.values())

from fulfillment.schemas.order import OrderMessage, ValidationResult


def validate_order(order: OrderMessage) -> ValidationResult:
    """Check an order against the acceptance rules.

    Rules run in a fixed order and the first failure is reported.
    """
    if order.order_id <= 0:
        return ValidationResult.fail("OrderId debe ser mayor que 0")

    if order.user_id <= 0:
        return ValidationResult.fail("UserId debe ser mayor que 0")

    if order.total_amount <= 0:
        return ValidationResult.fail("TotalAmount debe ser mayor que 0")

    if not order.items:
        return ValidationResult.fail("Debe tener al menos 1 item")

    return ValidationResult.success()

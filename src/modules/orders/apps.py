from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCancelled,
            OrderCreated,
            OrderPaid,
            OrderShipped,
            OrderStatusChanged,
        )
        from modules.orders.handlers import (
            cash_on_delivery_stock_handler,
            order_cancelled_handler,
            order_status_changed_handler,
            paid_order_stock_handler,
            payment_confirmation_email_handler,
            shipping_notification_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, cash_on_delivery_stock_handler)
        event_bus.subscribe(OrderPaid, paid_order_stock_handler)
        event_bus.subscribe(OrderPaid, payment_confirmation_email_handler)
        event_bus.subscribe(OrderShipped, shipping_notification_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)

"""Order service layer (Use Cases).

Orchestrates checkout, payment confirmation and the back-office lifecycle.
All write operations are atomic; the service defines the unit-of-work
boundary.

Business rules enforced:
- Prices, names and currency come from the catalog, never from the client.
- Every product must exist, be active and have enough stock; all lines
  must share one currency.
- Shipping and tax are resolved before anything is written; an
  unsupported country or a missing delivery rule aborts the checkout.
- Fulfilment and payment transitions are validated against their own
  tables; every change is recorded in the history.
- Reaching ``paid`` records ``OrderPaid`` in the outbox exactly once.
  Emails and stock moves run after commit, out of the request path.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import structlog
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from modules.orders.constants import (
    ANALYTICS_PERIODS,
    HistoryField,
    OrderStatus,
    PaymentStatus,
    map_provider_status,
)
from modules.orders.dtos import (
    DailyRevenueDTO,
    DashboardStatsDTO,
    OrderAnalyticsDTO,
    TopProductDTO,
)
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderShipped,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    CurrencyMismatch,
    InactiveProduct,
    InsufficientStock,
    InvalidAnalyticsPeriod,
    InvalidOrderStatus,
    InvalidPaymentMethod,
    InvalidPaymentStatus,
    OrderNotFound,
    OrderPersistenceError,
    PaymentAmountMismatch,
    ProductNotFound,
)
from modules.shipping.services import compose_totals
from shared.domain.money import quantize, to_minor_units

if TYPE_CHECKING:
    from modules.catalog.repositories.interfaces import IProductRepository
    from modules.orders.dtos import CreateOrderDTO, PaymentResultDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.shipping.services import CheckoutPricingResolver

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the pricing resolver via constructor
    injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        pricing_resolver: CheckoutPricingResolver,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._pricing = pricing_resolver

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Tuple[Order, bool]:
        """Place an order.  Returns ``(order, created)``.

        A repeated ``idempotency_key`` returns the original order with
        ``created=False``.

        Raises:
            ProductNotFound, InactiveProduct, InsufficientStock,
            CurrencyMismatch: the cart cannot be sold as is.
            UnsupportedCountry, NoDeliveryRule: no shipping terms for the
                destination.
            OrderPersistenceError: the database rejected the write; nothing
                was persisted.
        """
        log = logger.bind(
            country_code=dto.customer.country_code,
            payment_method=dto.payment_method,
            line_count=len(dto.items),
        )

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("order.idempotency_hit", order_id=existing.order_id)
                return existing, False

        log.info("order.creation_started")
        try:
            order = self._create(dto, log)
        except IntegrityError as exc:
            if dto.idempotency_key:
                existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
                if existing:
                    log.info("order.idempotency_race", order_id=existing.order_id)
                    return existing, False
            log.error("order.persistence_failed", error=str(exc))
            raise OrderPersistenceError("Order could not be saved.") from exc
        except DatabaseError as exc:
            log.error("order.persistence_failed", error=str(exc))
            raise OrderPersistenceError("Order could not be saved.") from exc

        return self._order_repo.get_by_id(str(order.id)) or order, True

    @transaction.atomic
    def _create(self, dto: CreateOrderDTO, log) -> Order:
        lines = dto.merged_items()
        products = self._product_repo.get_many(str(line.product_id) for line in lines)

        snapshot = []
        currencies = set()
        subtotal = Decimal("0.00")
        for line in lines:
            product = products.get(str(line.product_id))
            if product is None:
                raise ProductNotFound(f"Product {line.product_id} not found.")
            if not product.is_sellable:
                raise InactiveProduct(f"Product {product.name} is not available.")
            if product.stock_quantity < line.quantity:
                raise InsufficientStock(
                    f"Product {product.name}: requested {line.quantity}, "
                    f"available {product.stock_quantity}."
                )
            unit_price = quantize(product.price)
            currencies.add(product.currency)
            subtotal += unit_price * line.quantity
            snapshot.append(
                {
                    "product_id": product.id,
                    "name": product.name,
                    "image": product.main_image,
                    "unit_price": unit_price,
                    "currency": product.currency,
                    "quantity": line.quantity,
                }
            )

        if len(currencies) > 1:
            raise CurrencyMismatch(
                f"Cart mixes currencies: {', '.join(sorted(currencies))}."
            )

        pricing = self._pricing.resolve(lines, dto.customer.country_code)
        totals = compose_totals(subtotal, pricing)

        customer = dto.customer
        order = self._order_repo.create(
            {
                "customer_email": customer.email,
                "customer_first_name": customer.first_name,
                "customer_last_name": customer.last_name,
                "customer_phone": customer.phone,
                "customer_address": customer.address,
                "customer_city": customer.city,
                "customer_zip_code": customer.zip_code,
                "customer_country": pricing.country_name,
                "country_code": pricing.country_code,
                "currency": currencies.pop(),
                "subtotal": totals.subtotal,
                "shipping_cost": totals.shipping_cost,
                "tax_percentage": totals.tax_percentage,
                "tax_amount": totals.tax_amount,
                "total": totals.total,
                "delivery_description": pricing.delivery_description,
                "payment_method": dto.payment_method,
                "notes": dto.notes,
                "idempotency_key": dto.idempotency_key,
                "items": snapshot,
            }
        )

        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, payment_method=str(dto.payment_method))
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            field=HistoryField.STATUS,
            new_value=OrderStatus.PENDING,
            notes="Order created",
        )

        log.info(
            "order.created",
            order_id=order.order_id,
            total=str(order.total),
            currency=order.currency,
        )
        return order

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @transaction.atomic
    def confirm_payment(self, order_id: str, result: PaymentResultDTO) -> Order:
        """Apply a provider payment result to an order.

        Idempotent: confirming an already-paid order changes nothing and
        records no new event.  Provider states that arrive after the order
        left their reachable states (e.g. a late ``processing`` after
        ``paid``) are ignored with a warning.

        Raises:
            OrderNotFound: unknown public order id.
            InvalidPaymentMethod: cash-on-delivery orders are settled by an
                operator, not by a provider.
            PaymentProviderError: unknown provider status.
            PaymentAmountMismatch: the provider charged something other
                than the order total.
        """
        order = self._order_repo.get_for_update_by_order_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=order.order_id, provider_status=result.provider_status)

        if order.is_cash_on_delivery:
            log.warning("order.payment_confirmation_rejected", reason="cash_on_delivery")
            raise InvalidPaymentMethod(
                "Cash on delivery orders are settled by an operator."
            )

        new_status = map_provider_status(result.provider_status)
        if new_status == PaymentStatus.PAID and result.amount_minor is not None:
            self._check_amount(order, result)

        return self._apply_payment_status(
            order,
            new_status,
            details=result.payment_details,
            notes=f"Provider status: {result.provider_status}",
            strict=False,
        )

    @transaction.atomic
    def update_payment_status(
        self,
        id: str,
        new_status: str,
        notes: str = "",
        user: Any = None,
    ) -> Order:
        """Operator-driven payment change (cash collected, refund issued...).

        Raises:
            OrderNotFound: unknown order.
            InvalidPaymentStatus: unknown status or transition not allowed.
        """
        if new_status not in PaymentStatus.values:
            raise InvalidPaymentStatus(f"Unknown payment status {new_status!r}.")

        order = self._order_repo.get_for_update(id)
        if not order:
            raise OrderNotFound(f"Order {id} not found.")

        return self._apply_payment_status(
            order, new_status, notes=notes, user=user, strict=True
        )

    @transaction.atomic
    def attach_payment_intent(self, order_id: str, intent_id: str) -> Order:
        order = self._order_repo.get_for_update_by_order_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if order.payment_intent_id != intent_id:
            order.payment_intent_id = intent_id
            self._order_repo.save(order)
            logger.info(
                "order.payment_intent_attached",
                order_id=order.order_id,
                payment_intent_id=intent_id,
            )
        return order

    def _apply_payment_status(
        self,
        order: Order,
        new_status: str,
        details: Optional[Dict[str, Any]] = None,
        notes: str = "",
        user: Any = None,
        strict: bool = True,
    ) -> Order:
        current = order.payment_status
        log = logger.bind(
            order_id=order.order_id,
            current_payment_status=current,
            new_payment_status=new_status,
        )

        if new_status == current:
            log.info("order.payment_status_unchanged")
            return order

        if not order.can_transition_payment_to(new_status):
            if strict:
                log.warning("order.invalid_payment_transition")
                raise InvalidPaymentStatus(
                    f"Cannot change payment from {current} to {new_status}."
                )
            log.warning("order.stale_payment_status_ignored")
            return order

        order.payment_status = new_status
        if details:
            order.payment_details = {**(order.payment_details or {}), **details}
        if new_status == PaymentStatus.PAID:
            order.add_domain_event(OrderPaid(aggregate_id=order.id))

        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            field=HistoryField.PAYMENT_STATUS,
            old_value=current,
            new_value=new_status,
            notes=notes,
            user=user,
        )
        log.info("order.payment_status_updated")
        return order

    def _check_amount(self, order: Order, result: PaymentResultDTO) -> None:
        expected = to_minor_units(order.total, order.currency)
        currency = (result.currency or order.currency).upper()
        if result.amount_minor != expected or currency != order.currency:
            logger.error(
                "order.payment_amount_mismatch",
                order_id=order.order_id,
                expected_amount=expected,
                expected_currency=order.currency,
                charged_amount=result.amount_minor,
                charged_currency=currency,
            )
            raise PaymentAmountMismatch(
                f"Charged {result.amount_minor} {currency}, "
                f"expected {expected} {order.currency}."
            )

    # ------------------------------------------------------------------
    # Fulfilment
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_status(
        self,
        id: str,
        new_status: str,
        notes: str = "",
        user: Any = None,
        tracking_number: Optional[str] = None,
    ) -> Order:
        """Move an order along pending → confirmed → processing → shipped → delivered.

        Acquires a row-level lock before validating the transition.  Payment
        status is never touched.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: unknown status or transition not allowed.
        """
        if new_status not in OrderStatus.values:
            raise InvalidOrderStatus(f"Unknown order status {new_status!r}.")

        order = self._order_repo.get_for_update(id)
        if not order:
            raise OrderNotFound(f"Order {id} not found.")

        log = logger.bind(
            order_id=order.order_id,
            current_status=order.status,
            new_status=new_status,
        )

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}."
            )

        old_status = order.status
        order.status = new_status
        if tracking_number:
            order.tracking_number = tracking_number.strip()

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=new_status
            )
        )
        if new_status == OrderStatus.SHIPPED:
            order.add_domain_event(
                OrderShipped(aggregate_id=order.id, tracking_number=order.tracking_number)
            )
        elif new_status == OrderStatus.CANCELLED:
            order.add_domain_event(OrderCancelled(aggregate_id=order.id))

        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            field=HistoryField.STATUS,
            old_value=old_status,
            new_value=new_status,
            notes=notes,
            user=user,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order.id)) or order

    def cancel_order(self, id: str, notes: str = "", user: Any = None) -> Order:
        """Cancel from any non-terminal status.

        Stock already taken for the order is released after commit by the
        ``OrderCancelled`` handler.
        """
        return self.update_status(
            id, OrderStatus.CANCELLED, notes=notes or "Order cancelled", user=user
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Look up by public id.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_order_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def get_order_by_pk(self, id: str) -> Order:
        order = self._order_repo.get_by_id(id)
        if not order:
            raise OrderNotFound(f"Order {id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        return self._order_repo.list(filters)

    def dashboard_stats(self, low_stock_threshold: int, recent_limit: int = 10) -> DashboardStatsDTO:
        by_status = self._order_repo.count_by_status()
        return DashboardStatsDTO(
            total_products=self._product_repo.count(),
            total_orders=sum(by_status.values()),
            orders_by_status=by_status,
            revenue=self._order_repo.revenue_by_currency(),
            recent_orders=[
                {
                    "id": str(order.id),
                    "order_id": order.order_id,
                    "customer_name": order.customer_name,
                    "total": str(order.total),
                    "currency": order.currency,
                    "status": order.status,
                    "payment_status": order.payment_status,
                    "created_at": order.created_at.isoformat(),
                }
                for order in self._order_repo.recent(recent_limit)
            ],
            low_stock_products=[
                {
                    "id": str(product.id),
                    "name": product.name,
                    "stock_quantity": product.stock_quantity,
                }
                for product in self._product_repo.low_stock(low_stock_threshold)
            ],
        )

    def analytics(self, period: str, currency: str) -> OrderAnalyticsDTO:
        """Sales analytics over ``period`` (``7d``, ``30d``, ``90d`` or ``1y``).

        The window is made of whole days in the current time zone, ending
        today, so the daily series always adds up to ``total_revenue``.

        Raises:
            InvalidAnalyticsPeriod: ``period`` is not a supported window.
        """
        days = ANALYTICS_PERIODS.get(period)
        if days is None:
            raise InvalidAnalyticsPeriod(
                f"Unknown period {period!r}; use one of {', '.join(ANALYTICS_PERIODS)}."
            )

        end_date = timezone.localdate()
        start_date = end_date - timedelta(days=days - 1)
        since = timezone.make_aware(datetime.combine(start_date, time.min))

        summary = self._order_repo.period_summary(since, currency)
        daily = self._order_repo.daily_paid_revenue(since, currency)
        revenue = quantize(summary["revenue"])
        paid_orders = summary["paid_orders"]

        logger.info(
            "order.analytics_computed",
            period=period,
            currency=currency,
            paid_orders=paid_orders,
        )
        return OrderAnalyticsDTO(
            period=period,
            currency=currency,
            start_date=start_date,
            end_date=end_date,
            total_orders=summary["total_orders"],
            paid_orders=paid_orders,
            total_revenue=revenue,
            average_order_value=(
                quantize(revenue / paid_orders) if paid_orders else Decimal("0.00")
            ),
            unique_customers=summary["unique_customers"],
            daily_revenue=[
                DailyRevenueDTO(
                    day=day,
                    revenue=quantize(daily.get(day, {}).get("revenue") or Decimal("0")),
                    orders=daily.get(day, {}).get("orders", 0),
                )
                for day in (start_date + timedelta(days=offset) for offset in range(days))
            ],
            status_distribution=summary["status_distribution"],
            payment_status_distribution=summary["payment_status_distribution"],
            top_products=[
                TopProductDTO(
                    product_id=row["product_id"],
                    name=row["name"],
                    quantity=row["quantity"],
                    revenue=quantize(row["revenue"]),
                )
                for row in self._order_repo.top_products(since, currency)
            ],
        )


def build_order_service() -> OrderService:
    """Service wired to the Django repositories."""
    from modules.catalog.repositories.django_repository import ProductDjangoRepository
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.shipping.services import build_pricing_resolver

    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        pricing_resolver=build_pricing_resolver(),
    )

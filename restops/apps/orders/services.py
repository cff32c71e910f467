"""
Order lifecycle: placement, status changes, payment and cancellation.

Placement validates every line against the effective menu, deducts the summed
ingredient consumption and stores the order in one transaction. Cancellation
puts back exactly what the ledger took for the order.
"""

from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F, Max
from django.utils import timezone

from restops.apps.branches.models import Branch, Table
from restops.apps.branches.services import branch_index, get_branch, live_branches
from restops.apps.inventory.ledger import (
    StockPolicy,
    aggregate_requirements,
    check_and_deduct,
    restore,
    stock_source_for,
)
from restops.apps.menu.resolver import MenuFilters, resolve_menu
from restops.apps.orders.models import (
    OPEN_STATUSES,
    Customer,
    Order,
    OrderItem,
    OrderSource,
    OrderStatus,
    PaymentMethod,
)
from restops.apps.orders.schemas import OrderRequest, PaymentRequest
from restops.conf import engine_setting
from restops.utils.exceptions import ConflictError, NotFound, StateError, ValidationError
from restops.utils.logger import RestOpsLogger
from restops.utils.schemas import parse_payload

logger = RestOpsLogger(__name__)

ZERO = Decimal('0')


def _order_branch(restaurant, request, branch):
    if branch is None and request.branch_id is not None:
        branch = get_branch(restaurant, request.branch_id)

    if branch is not None:
        if branch.restaurant_id != restaurant.pk or branch.is_deleted:
            raise NotFound("Branch not found")
        if branch.status != Branch.STATUS_ACTIVE:
            raise StateError("Branch is not accepting orders", current_status=branch.status)
        return branch

    if live_branches(restaurant).exists():
        raise ValidationError("Branch is required", errors={'branch_id': 'This restaurant has branches; pick one'})
    return None


def _order_table(restaurant, branch, table_id):
    if table_id is None:
        return None
    try:
        return Table.objects.get(restaurant=restaurant, branch=branch, pk=table_id)
    except Table.DoesNotExist:
        raise ValidationError("Unknown table", errors={'table_id': f"Table {table_id} not found"})


def _resolve_lines(restaurant, branch, request):
    """Match every cart line to an effective menu item. All bad lines are reported together."""
    ids = {line.menu_item_id for line in request.items}
    resolved = {item.id: item for item in resolve_menu(restaurant, branch, MenuFilters(item_ids=ids))}

    errors = {}
    lines = []
    for index, line in enumerate(request.items):
        effective = resolved.get(line.menu_item_id)
        if effective is None:
            errors[f'items.{index}.menu_item_id'] = f"Menu item {line.menu_item_id} not found"
        elif not effective.listed_available:
            errors[f'items.{index}.menu_item_id'] = f"{effective.name} is not available"
        else:
            lines.append((effective, line.quantity))

    if errors:
        raise ValidationError("Order contains invalid items", errors=errors)
    return lines


def _recipe_snapshot(effective):
    return [[item_id, str(quantity)] for item_id, quantity in effective.recipe]


def _next_order_number(restaurant, branch, source, token_date):
    last = (
        Order.objects.filter(restaurant=restaurant, branch=branch, token_date=token_date)
        .aggregate(last=Max('token_number'))['last']
    )
    token = (last or 0) + 1
    prefix = engine_setting('WEBSITE_ORDER_PREFIX' if source == OrderSource.WEBSITE else 'POS_ORDER_PREFIX')
    return token, f"{prefix}-{token_date:%Y%m%d}-{branch_index(restaurant, branch)}-{token:04d}"


def _insert_order(restaurant, branch, source, **fields):
    """Insert with the next token for the day, retrying when a concurrent order took it."""
    token_date = timezone.localdate()
    retries = engine_setting('ORDER_NUMBER_MAX_RETRIES')
    for attempt in range(1, retries + 1):
        token, number = _next_order_number(restaurant, branch, source, token_date)
        try:
            with transaction.atomic():
                return Order.objects.create(
                    restaurant=restaurant,
                    branch=branch,
                    source=source,
                    token_number=token,
                    token_date=token_date,
                    order_number=number,
                    **fields,
                )
        except IntegrityError:
            logger.warning(f"Order number {number} taken concurrently (attempt {attempt}/{retries})")
    raise ConflictError("Could not allocate an order number, please retry")


def _record_customer(restaurant, branch, request, total):
    """Upsert the (restaurant, branch, phone) customer and count this order against it."""
    phone = request.customer_phone.strip()
    if not phone:
        return None

    customer, created = Customer.objects.get_or_create(
        restaurant=restaurant,
        branch=branch,
        phone=phone,
        defaults={'name': request.customer_name.strip() or Customer.WALK_IN_NAME},
    )
    changes = {
        'total_orders': F('total_orders') + 1,
        'total_spent': F('total_spent') + total,
        'last_order_at': timezone.now(),
    }
    if request.customer_name.strip():
        changes['name'] = request.customer_name.strip()
    Customer.objects.filter(pk=customer.pk).update(**changes)
    logger.debug(f"{'New' if created else 'Returning'} customer {customer.pk} for restaurant {restaurant.pk}")
    return customer


def create_order(restaurant, payload, user=None, branch=None):
    """
    Place an order.

    Raises ValidationError for bad payloads or references, NotFound for a
    foreign branch, StateError for a branch not taking orders and
    InsufficientStock when an ingredient is short. Nothing is written on failure.
    """
    request = parse_payload(OrderRequest, payload, "Invalid order")
    branch = _order_branch(restaurant, request, branch)
    log = logger.bind(restaurant=restaurant.pk, branch=branch.pk if branch else None)

    table = _order_table(restaurant, branch, request.table_id)
    lines = _resolve_lines(restaurant, branch, request)

    subtotal = sum((effective.effective_price * quantity for effective, quantity in lines), ZERO)
    discount = request.discount_amount
    total = max(ZERO, subtotal - discount)

    required = aggregate_requirements((effective.recipe, quantity) for effective, quantity in lines)
    source = stock_source_for(restaurant, branch)
    policy = StockPolicy.for_restaurant(restaurant)

    with transaction.atomic():
        deducted = check_and_deduct(source, required, policy)

        order = _insert_order(
            restaurant,
            branch,
            request.source,
            table=table,
            order_type=request.order_type,
            payment_method=request.payment_method or '',
            status=OrderStatus.UNPROCESSED,
            subtotal=subtotal,
            discount_amount=discount,
            total=total,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            delivery_address=request.delivery_address,
            notes=request.notes,
            stock_deducted={str(item_id): str(quantity) for item_id, quantity in deducted.items()},
            created_by=user if user is not None and user.is_authenticated else None,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                menu_item=effective.menu_item,
                name=effective.name,
                quantity=quantity,
                unit_price=effective.effective_price,
                line_total=effective.effective_price * quantity,
                recipe=_recipe_snapshot(effective),
            )
            for effective, quantity in lines
        ])

        if table is not None:
            Table.objects.filter(pk=table.pk).update(is_available=False)

        _record_customer(restaurant, branch, request, total)

    log.info(f"Order {order.order_number} placed: {len(lines)} line(s), total {total}")
    return order


def _recorded_requirements(order):
    lines = []
    for item in order.items.select_related('menu_item'):
        if item.recipe is not None:
            recipe = item.recipe
        elif item.menu_item is not None:
            logger.warning(f"Order {order.pk} line {item.pk} has no recorded recipe, using the current one")
            recipe = item.menu_item.recipe()
        else:
            logger.warning(f"Order {order.pk} line {item.pk} has no recipe and no menu item, nothing to restore")
            continue
        lines.append((recipe, item.quantity))
    return aggregate_requirements(lines)


def _reversal(order):
    """What cancelling ``order`` puts back: the recorded deduction, else the line recipes."""
    deducted = Order.objects.values_list('stock_deducted', flat=True).get(pk=order.pk)
    if deducted is None:
        return _recorded_requirements(order)
    return {int(item_id): Decimal(quantity) for item_id, quantity in deducted.items() if Decimal(quantity) > 0}


def _release_table(order):
    if order.table_id is not None:
        Table.objects.filter(pk=order.table_id).update(is_available=True)


def cancel_order(order, user=None):
    """
    Cancel an open order and put its ingredients back.

    The status flip is a conditional update, so of two racing cancels only one
    restores stock; the other gets a StateError.
    """
    now = timezone.now()
    with transaction.atomic():
        flipped = Order.objects.filter(pk=order.pk, status__in=OPEN_STATUSES).update(
            status=OrderStatus.CANCELLED, cancelled_at=now, updated_at=now,
        )
        if not flipped:
            order.refresh_from_db()
            raise StateError(f"Order cannot be cancelled while {order.status}", current_status=order.status)

        restore(stock_source_for(order.restaurant, order.branch), _reversal(order))
        _release_table(order)

    order.refresh_from_db()
    logger.bind(restaurant=order.restaurant_id, branch=order.branch_id).info(
        f"Order {order.order_number} cancelled{f' by {user.email}' if user is not None and user.is_authenticated else ''}"
    )
    return order


def update_status(order, new_status):
    """Move an open order to another status. Cancelling goes through cancel_order."""
    if new_status not in OrderStatus.values:
        raise ValidationError("Invalid status", errors={'status': f"Must be one of {OrderStatus.values}"})
    if new_status == OrderStatus.CANCELLED:
        return cancel_order(order)

    with transaction.atomic():
        updated = Order.objects.filter(pk=order.pk, status__in=OPEN_STATUSES).update(
            status=new_status, updated_at=timezone.now(),
        )
        if not updated:
            order.refresh_from_db()
            raise StateError(f"Order is already {order.status}", current_status=order.status)
        if new_status == OrderStatus.COMPLETED:
            _release_table(order)

    order.refresh_from_db()
    logger.info(f"Order {order.order_number} moved to {new_status}")
    return order


def record_payment(order, payment_method, amount_received=None, amount_returned=None):
    """
    Record how an order was paid. Cash needs the amount handed over; the first
    payment completes the order.
    """
    payment = parse_payload(
        PaymentRequest,
        {'payment_method': payment_method, 'amount_received': amount_received, 'amount_returned': amount_returned},
        "Invalid payment",
    )

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        if order.status == OrderStatus.CANCELLED:
            raise StateError("Cannot record payment for a cancelled order", current_status=order.status)

        if payment.payment_method == PaymentMethod.CASH:
            if payment.amount_received is None:
                raise ValidationError("Invalid payment", errors={'amount_received': 'Required for cash payments'})
            if payment.amount_received < order.total:
                raise ValidationError(
                    "Invalid payment",
                    errors={'amount_received': f"Must be at least the order total {order.total}"},
                )
            order.amount_received = payment.amount_received
            order.amount_returned = (
                payment.amount_returned if payment.amount_returned is not None
                else payment.amount_received - order.total
            )
        else:
            order.amount_received = None
            order.amount_returned = None

        order.payment_method = payment.payment_method
        if order.paid_at is None:
            order.paid_at = timezone.now()
        completed_now = order.status != OrderStatus.COMPLETED
        if completed_now:
            order.status = OrderStatus.COMPLETED
            _release_table(order)
        order.save()

    logger.info(
        f"Payment recorded for order {order.order_number}: {order.payment_method}"
        f"{' (order completed)' if completed_now else ''}"
    )
    return order


def get_order(restaurant, reference, branch=None):
    """Look an order up by id or by order number, within the caller's restaurant (and branch)."""
    orders = Order.objects.filter(restaurant=restaurant).select_related('branch', 'table', 'restaurant')
    if branch is not None:
        orders = orders.filter(branch=branch)

    reference = str(reference).strip()
    lookup = {'pk': int(reference)} if reference.isdigit() else {'order_number': reference}
    try:
        return orders.get(**lookup)
    except Order.DoesNotExist:
        raise NotFound("Order not found")
    except Order.MultipleObjectsReturned:
        return orders.filter(**lookup).order_by('-created_at').first()


def delete_order(order):
    """Administrative hard delete. Stock is left as it is."""
    number = order.order_number
    with transaction.atomic():
        if not order.is_terminal:
            _release_table(order)
        order.delete()
    logger.warning(f"Order {number} deleted")


def kitchen_queue(restaurant, branch=None):
    """Open orders grouped by status, oldest first."""
    orders = (
        Order.objects.filter(restaurant=restaurant, status__in=OPEN_STATUSES)
        .select_related('table')
        .prefetch_related('items')
        .order_by('created_at', 'id')
    )
    if branch is not None:
        orders = orders.filter(branch=branch)

    queue = {status.value: [] for status in OPEN_STATUSES}
    for order in orders:
        queue[order.status].append(order)
    return queue

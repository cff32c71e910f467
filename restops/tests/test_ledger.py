from decimal import Decimal
import threading
from unittest import mock

from django.db import connection
from django.test import TransactionTestCase, skipUnlessDBFeature

from restops.apps.branches.models import Branch, Restaurant
from restops.apps.inventory.catalog import create_inventory_item
from restops.apps.inventory.ledger import (
    BranchScopedStock,
    RestaurantScopedStock,
    StockPolicy,
    adjust_stock,
    aggregate_requirements,
    check_and_deduct,
    copy_branch_inventory,
    restore,
    stock_report,
    stock_source_for,
)
from restops.apps.inventory.models import BranchInventory
from restops.tests.base import BaseTestCase, CatalogFixtures, logger
from restops.utils.exceptions import InsufficientStock, NotFound, ValidationError

STRICT = StockPolicy(allow_order_when_out_of_stock=False)
LENIENT = StockPolicy(allow_order_when_out_of_stock=True)


class LedgerTestCase(BaseTestCase):
    """Inventory ledger: all-or-nothing deduction, reversal, manual adjustment"""

    def test_source_selection(self):
        self.assertIsInstance(stock_source_for(self.restaurant, self.branch_a), BranchScopedStock)
        self.assertIsInstance(stock_source_for(self.restaurant), RestaurantScopedStock)

    def test_policy_from_restaurant(self):
        self.assertEqual(StockPolicy.for_restaurant(self.restaurant), STRICT)
        self.restaurant.allow_order_when_out_of_stock = True
        self.assertEqual(StockPolicy.for_restaurant(self.restaurant), LENIENT)

    def test_aggregate_requirements(self):
        required = aggregate_requirements([
            ([(self.beef.id, Decimal('200')), (self.bun.id, Decimal('1'))], 2),
            ([[self.beef.id, '150']], 1),
        ])
        self.assertEqual(required, {self.beef.id: Decimal('550'), self.bun.id: Decimal('2')})

    def test_deduct_and_restore_symmetry(self):
        logger.info("Testing Ledger - deduction/reversal symmetry")
        source = stock_source_for(self.restaurant, self.branch_a)
        required = {self.beef.id: Decimal('400'), self.bun.id: Decimal('2')}

        taken = check_and_deduct(source, required, STRICT)
        self.assertEqual(taken, required)
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('100'))
        self.assertEqual(self.stock_at(self.branch_a, self.bun), Decimal('48'))

        restore(source, required)
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('500'))
        self.assertEqual(self.stock_at(self.branch_a, self.bun), Decimal('50'))

    def test_shortfall_lists_every_short_ingredient(self):
        logger.info("Testing Ledger - itemized InsufficientStock, nothing mutated")
        source = stock_source_for(self.restaurant, self.branch_a)
        required = {
            self.beef.id: Decimal('600'),
            self.bun.id: Decimal('51'),
            self.dough.id: Decimal('10'),
        }

        with self.assertRaises(InsufficientStock) as ctx:
            check_and_deduct(source, required, STRICT)

        details = {s.name: s for s in ctx.exception.shortfalls}
        self.assertEqual(set(details), {'Beef', 'Bun'}, "Only the short ingredients are listed")
        self.assertEqual(details['Beef'].required, Decimal('600'))
        self.assertEqual(details['Beef'].available, Decimal('500'))
        self.assertEqual(self.stock_at(self.branch_a, self.dough), Decimal('1000'), "Nothing deducted on failure")

        payload = ctx.exception.payload()
        self.assertEqual(payload['code'], 'insufficient_stock')
        self.assertEqual(len(payload['details']), 2)

    def test_missing_branch_row_is_zero(self):
        source = stock_source_for(self.restaurant, self.branch_b)
        with self.assertRaises(InsufficientStock) as ctx:
            check_and_deduct(source, {self.cola_syrup.id: Decimal('50')}, STRICT)
        self.assertEqual(ctx.exception.shortfalls[0].available, Decimal('0'))
        self.assertFalse(
            BranchInventory.objects.filter(branch=self.branch_b, inventory_item=self.cola_syrup).exists(),
            "Deduction never creates rows",
        )

    def test_out_of_stock_policy_floors_at_zero(self):
        logger.info("Testing Ledger - allow_order_when_out_of_stock")
        source = stock_source_for(self.restaurant, self.branch_a)
        taken = check_and_deduct(source, {self.beef.id: Decimal('700'), self.bun.id: Decimal('1')}, LENIENT)
        self.assertEqual(taken, {self.beef.id: Decimal('500'), self.bun.id: Decimal('1')}, "Only what was on hand is taken")
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('0'))
        self.assertEqual(self.stock_at(self.branch_a, self.bun), Decimal('49'))

        # missing rows are skipped, not created
        other_source = stock_source_for(self.restaurant, self.branch_b)
        taken = check_and_deduct(other_source, {self.cola_syrup.id: Decimal('10')}, LENIENT)
        self.assertIsNone(self.stock_at(self.branch_b, self.cola_syrup))
        self.assertEqual(taken, {self.cola_syrup.id: Decimal('0')})

    def test_lenient_restore_puts_back_what_was_taken(self):
        self.set_stock(self.branch_a, self.beef, '100')
        source = stock_source_for(self.restaurant, self.branch_a)

        taken = check_and_deduct(source, {self.beef.id: Decimal('200')}, LENIENT)
        restore(source, taken)
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('100'), "No stock is created by the round trip")

    def test_concurrent_drain_rolls_back(self):
        logger.info("Testing Ledger - guard failure after the pre-check rolls back earlier decrements")
        source = stock_source_for(self.restaurant, self.branch_a)
        required = {self.beef.id: Decimal('200'), self.bun.id: Decimal('1')}
        drain_key = max(required)
        original = BranchScopedStock.deduct

        def racing_deduct(stock, item_id, quantity):
            if item_id == drain_key:
                # another order empties this key between the check and the update
                BranchInventory.objects.filter(branch=self.branch_a, inventory_item_id=item_id).update(current_stock=0)
            return original(stock, item_id, quantity)

        before = {item_id: source.level(item_id) for item_id in required}
        with mock.patch.object(BranchScopedStock, 'deduct', racing_deduct):
            with self.assertRaises(InsufficientStock) as ctx:
                check_and_deduct(source, required, STRICT)

        self.assertEqual([s.inventory_item_id for s in ctx.exception.shortfalls], [drain_key])
        first_key = min(required)
        self.assertEqual(source.level(first_key), before[first_key], "Earlier decrement must be rolled back")

    def test_no_oversell_of_last_unit(self):
        logger.info("Testing Ledger - at most one order takes the last unit")
        self.set_stock(self.branch_a, self.beef, '200')
        source = stock_source_for(self.restaurant, self.branch_a)

        outcomes = []
        for _ in range(3):
            try:
                check_and_deduct(source, {self.beef.id: Decimal('200')}, STRICT)
                outcomes.append('ok')
            except InsufficientStock:
                outcomes.append('short')

        self.assertEqual(outcomes.count('ok'), 1)
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('0'))
        self.assertFalse(source.deduct(self.beef.id, Decimal('1')), "Guarded decrement refuses to go negative")

    def test_restaurant_scoped_stock(self):
        diner = Restaurant.objects.create(name='Corner Diner')
        eggs = create_inventory_item(diner, 'Eggs', 'pcs', initial_stock=12)
        source = stock_source_for(diner)

        check_and_deduct(source, {eggs.id: Decimal('5')}, STRICT)
        self.assertEqual(self.restaurant_stock(eggs), Decimal('7'))
        restore(source, {eggs.id: Decimal('5')})
        self.assertEqual(self.restaurant_stock(eggs), Decimal('12'))

    def test_restore_skips_missing_rows(self):
        source = stock_source_for(self.restaurant, self.branch_b)
        restore(source, {self.cola_syrup.id: Decimal('50')})
        self.assertIsNone(self.stock_at(self.branch_b, self.cola_syrup))

    def test_adjust_stock(self):
        logger.info("Testing Ledger - manual adjustment")
        source = stock_source_for(self.restaurant, self.branch_b)

        level = adjust_stock(source, self.cola_syrup, '300')
        self.assertEqual(level, Decimal('300'), "First adjustment creates the branch row")

        level = adjust_stock(source, self.cola_syrup, '-1000')
        self.assertEqual(level, Decimal('0'), "Adjustment floors at zero")

        other = Restaurant.objects.create(name='Other')
        salt = create_inventory_item(other, 'Salt', 'g')
        with self.assertRaises(NotFound):
            adjust_stock(source, salt, '1')

    def test_stock_report(self):
        self.beef.low_stock_threshold = Decimal('600')
        self.beef.save()

        report = {row['name']: row for row in stock_report(self.restaurant, self.branch_b)}
        self.assertEqual(report['Beef']['current_stock'], Decimal('1000'))
        self.assertTrue(report['Beef']['has_branch_record'])
        self.assertFalse(report['Cola syrup']['has_branch_record'])
        self.assertEqual(report['Cola syrup']['current_stock'], Decimal('0'))

        report = {row['name']: row for row in stock_report(self.restaurant, self.branch_a)}
        self.assertFalse(report['Beef']['is_low_stock'], "Branch row threshold is 0")

        BranchInventory.objects.filter(branch=self.branch_a, inventory_item=self.beef).update(low_stock_threshold=600)
        report = {row['name']: row for row in stock_report(self.restaurant, self.branch_a)}
        self.assertTrue(report['Beef']['is_low_stock'])

    def test_copy_branch_inventory(self):
        branch_c = Branch.objects.create(restaurant=self.restaurant, name='Harbour', sort_order=3)
        created = copy_branch_inventory(self.branch_a, branch_c)
        self.assertEqual(created, 4)
        self.assertEqual(self.stock_at(branch_c, self.beef), Decimal('0'))

        self.assertEqual(copy_branch_inventory(self.branch_a, branch_c), 0, "Existing rows are left alone")

        foreign = Branch.objects.create(restaurant=Restaurant.objects.create(name='Other'), name='X')
        with self.assertRaises(ValidationError):
            copy_branch_inventory(self.branch_a, foreign)



@skipUnlessDBFeature('has_select_for_update')
class ConcurrentDeductionTestCase(CatalogFixtures, TransactionTestCase):
    """Racing orders against one stock row, each worker on its own connection"""

    WORKERS = 4

    def setUp(self):
        logger.info(f"\n{'='*50}\nStarting test: {self._testMethodName}\n{'='*50}")
        self.build_catalog()

    def race(self, required, policy):
        barrier = threading.Barrier(self.WORKERS)
        outcomes = []
        lock = threading.Lock()

        def attempt():
            try:
                barrier.wait(timeout=10)
                check_and_deduct(stock_source_for(self.restaurant, self.branch_a), required, policy)
                outcome = 'ok'
            except InsufficientStock:
                outcome = 'short'
            finally:
                connection.close()
            with lock:
                outcomes.append(outcome)

        workers = [threading.Thread(target=attempt) for _ in range(self.WORKERS)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=30)
        return outcomes

    def test_only_one_worker_takes_the_last_unit(self):
        logger.info("Testing Ledger - concurrent orders for the last 200g of Beef")
        self.set_stock(self.branch_a, self.beef, '200')

        outcomes = self.race({self.beef.id: Decimal('200')}, STRICT)

        self.assertEqual(len(outcomes), self.WORKERS, f"Every worker finished: {outcomes}")
        self.assertEqual(outcomes.count('ok'), 1, f"Exactly one order succeeds: {outcomes}")
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('0'))

    def test_lenient_workers_never_go_negative(self):
        self.set_stock(self.branch_a, self.beef, '300')

        outcomes = self.race({self.beef.id: Decimal('200')}, LENIENT)

        self.assertEqual(outcomes, ['ok'] * self.WORKERS)
        self.assertEqual(self.stock_at(self.branch_a, self.beef), Decimal('0'))

from decimal import Decimal
import logging

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from restops.apps.branches.models import Branch, Restaurant
from restops.apps.inventory.catalog import create_inventory_item
from restops.apps.inventory.models import BranchInventory, InventoryItem
from restops.apps.menu.catalog import create_category, create_menu_item

User = get_user_model()
logger = logging.getLogger(__name__)


class CatalogFixtures:
    """
    Shared catalog for the core tests:

    Restaurant "Burger Barn" with branches Downtown (A) and Uptown (B).
    Burger uses 200g Beef; Downtown holds 500g Beef, Uptown 1000g.
    Pizza is not available everywhere and only Downtown carries an override for it.
    """

    @classmethod
    def build_catalog(cls):
        cls.restaurant = Restaurant.objects.create(name='Burger Barn')
        cls.branch_a = Branch.objects.create(restaurant=cls.restaurant, name='Downtown', code='DT', sort_order=1)
        cls.branch_b = Branch.objects.create(restaurant=cls.restaurant, name='Uptown', code='UP', sort_order=2)

        cls.mains = create_category(cls.restaurant, 'Mains', display_order=1)
        cls.drinks = create_category(cls.restaurant, 'Drinks', display_order=2)

        cls.beef = create_inventory_item(cls.restaurant, 'Beef', 'g')
        cls.bun = create_inventory_item(cls.restaurant, 'Bun', 'pcs')
        cls.dough = create_inventory_item(cls.restaurant, 'Dough', 'g')
        cls.cola_syrup = create_inventory_item(cls.restaurant, 'Cola syrup', 'ml')

        cls.set_stock(cls.branch_a, cls.beef, '500')
        cls.set_stock(cls.branch_a, cls.bun, '50')
        cls.set_stock(cls.branch_a, cls.dough, '1000')
        cls.set_stock(cls.branch_a, cls.cola_syrup, '2000')
        cls.set_stock(cls.branch_b, cls.beef, '1000')
        cls.set_stock(cls.branch_b, cls.bun, '50')
        cls.set_stock(cls.branch_b, cls.dough, '1000')

        cls.burger = create_menu_item(
            cls.restaurant, cls.mains, 'Burger', '8.50',
            consumptions=[(cls.beef, '200'), (cls.bun, '1')],
        )
        cls.pizza = create_menu_item(
            cls.restaurant, cls.mains, 'Pizza', '12.00',
            consumptions=[(cls.dough, '250')],
            available_everywhere=False,
        )
        cls.cola = create_menu_item(
            cls.restaurant, cls.drinks, 'Cola', '2.00',
            consumptions=[(cls.cola_syrup, '50')],
        )

    @staticmethod
    def set_stock(branch, item, quantity):
        row, _ = BranchInventory.objects.update_or_create(
            branch=branch, inventory_item=item, defaults={'current_stock': Decimal(quantity)},
        )
        return row

    @staticmethod
    def stock_at(branch, item):
        row = BranchInventory.objects.filter(branch=branch, inventory_item=item).first()
        return row.current_stock if row else None

    @staticmethod
    def restaurant_stock(item):
        return InventoryItem.objects.get(pk=item.pk).current_stock


class BaseTestCase(CatalogFixtures, TestCase):
    """Service-level tests sharing the Burger Barn catalog"""

    @classmethod
    def setUpTestData(cls):
        cls.build_catalog()

    def setUp(self):
        logger.info(f"\n{'='*50}\nStarting test: {self._testMethodName}\n{'='*50}")


class BaseAPITestCase(CatalogFixtures, APITestCase):
    """API tests: restaurant admin, Downtown-only staff member, and an outsider restaurant"""

    @classmethod
    def setUpTestData(cls):
        cls.build_catalog()
        cls.admin = User.objects.create_user(
            email='admin@burgerbarn.test', password='admin123',
            restaurant=cls.restaurant, is_restaurant_admin=True,
        )
        cls.staff = User.objects.create_staff_user(
            email='cashier@burgerbarn.test', password='staff123',
            restaurant=cls.restaurant, branches=[cls.branch_a],
        )
        cls.other_restaurant = Restaurant.objects.create(name='Noodle House')
        cls.outsider = User.objects.create_user(
            email='admin@noodlehouse.test', password='admin123',
            restaurant=cls.other_restaurant, is_restaurant_admin=True,
        )

    def setUp(self):
        logger.info(f"\n{'='*50}\nStarting test: {self._testMethodName}\n{'='*50}")
        self.authenticate(self.admin)

    def authenticate(self, user):
        token = AccessToken.for_user(user)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

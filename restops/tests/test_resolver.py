from decimal import Decimal

from restops.apps.branches.models import Branch, Restaurant
from restops.apps.inventory.catalog import create_inventory_item
from restops.apps.menu.catalog import create_category, create_menu_item, set_recipe
from restops.apps.menu.overrides import (
    clear_override,
    list_overrides,
    set_branch_availability,
    set_branch_price,
    set_override,
)
from restops.apps.menu.resolver import (
    MenuFilters,
    branch_exclusive_items,
    resolve_menu,
    resolve_menu_by_category,
    resolve_menu_item,
)
from restops.tests.base import BaseTestCase, logger
from restops.utils.exceptions import NotFound, ValidationError


class ResolverTestCase(BaseTestCase):
    """Effective menu: overrides, exclusivity and ingredient sufficiency"""

    def names(self, items):
        return {item.name for item in items}

    def test_pizza_exclusivity(self):
        logger.info("Testing Resolver - Pizza only listed where an override exists")
        set_override(self.branch_a, self.pizza, available=True)

        menu_a = self.names(resolve_menu(self.restaurant, self.branch_a))
        menu_b = self.names(resolve_menu(self.restaurant, self.branch_b))

        self.assertIn('Pizza', menu_a, "Branch A has an override, Pizza should be listed")
        self.assertNotIn('Pizza', menu_b, "Branch B has no override, Pizza should be omitted entirely")

    def test_override_availability_replaces_base(self):
        logger.info("Testing Resolver - override availability replaces base flag")
        set_branch_availability(self.branch_a, self.burger, False)

        burger_a = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        burger_b = resolve_menu_item(self.restaurant, self.burger.id, self.branch_b)
        self.assertFalse(burger_a.effective_available, "Override available=False should hide Burger at A")
        self.assertFalse(burger_a.listed_available)
        self.assertTrue(burger_b.effective_available, "Branch B is unaffected by A's override")

        # override can also switch on an item the catalog marks unavailable
        self.burger.available = False
        self.burger.save()
        set_branch_availability(self.branch_a, self.burger, True)
        burger_a = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        burger_b = resolve_menu_item(self.restaurant, self.burger.id, self.branch_b)
        self.assertTrue(burger_a.effective_available)
        self.assertFalse(burger_b.effective_available)

    def test_price_override(self):
        logger.info("Testing Resolver - price override wins over base price")
        set_branch_price(self.branch_a, self.burger, '9.75')

        burger_a = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        burger_b = resolve_menu_item(self.restaurant, self.burger.id, self.branch_b)
        self.assertEqual(burger_a.effective_price, Decimal('9.75'))
        self.assertEqual(burger_a.base_price, Decimal('8.50'))
        self.assertTrue(burger_a.has_override)
        self.assertEqual(burger_b.effective_price, Decimal('8.50'))
        self.assertFalse(burger_b.has_override)

        # a price-only override leaves availability at its default
        self.assertTrue(burger_a.effective_available)

    def test_set_override_keeps_unset_fields(self):
        set_override(self.branch_a, self.burger, price_override='7.00')
        set_override(self.branch_a, self.burger, available=False)

        overrides = list_overrides(self.branch_a)
        self.assertEqual(len(overrides), 1, "Upsert must keep a single row per (branch, item)")
        self.assertEqual(overrides[0].price_override, Decimal('7.00'))
        self.assertFalse(overrides[0].available)

        self.assertTrue(clear_override(self.branch_a, self.burger))
        self.assertFalse(clear_override(self.branch_a, self.burger), "Second clear has nothing to delete")
        burger_a = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        self.assertEqual(burger_a.effective_price, Decimal('8.50'))

    def test_override_values_are_validated(self):
        for bad in ({'price_override': 'abc'}, {'price_override': '-0.01'}, {'available': None}, {'available': 'maybe'}):
            with self.assertRaises(ValidationError, msg=f"Override should be rejected: {bad}"):
                set_override(self.branch_a, self.burger, **bad)
        self.assertEqual(list_overrides(self.branch_a), [], "Rejected overrides write nothing")

        override = set_override(self.branch_a, self.burger, available='false', price_override=None)
        self.assertFalse(override.available)
        self.assertIsNone(override.price_override)

    def test_override_rejects_foreign_item(self):
        other = Restaurant.objects.create(name='Other')
        other_category = create_category(other, 'Misc')
        foreign = create_menu_item(other, other_category, 'Soup', '3.00')
        with self.assertRaises(NotFound):
            set_override(self.branch_a, foreign, available=True)

    def test_insufficient_ingredients_force_unavailable(self):
        logger.info("Testing Resolver - sufficiency invariant")
        self.set_stock(self.branch_a, self.beef, '150')
        set_branch_availability(self.branch_a, self.burger, True)

        burger = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        self.assertFalse(burger.ingredients_sufficient)
        self.assertTrue(burger.listed_available)
        self.assertFalse(burger.effective_available, "Never available when ingredients are short")

        for item in resolve_menu(self.restaurant, self.branch_a):
            if not item.ingredients_sufficient:
                self.assertFalse(item.effective_available, f"{item.name} available while insufficient")

    def test_missing_branch_row_counts_as_no_stock(self):
        # Uptown has no Cola syrup row at all
        cola_b = resolve_menu_item(self.restaurant, self.cola.id, self.branch_b)
        self.assertFalse(cola_b.ingredients_sufficient)
        self.assertFalse(cola_b.effective_available)

        cola_a = resolve_menu_item(self.restaurant, self.cola.id, self.branch_a)
        self.assertTrue(cola_a.effective_available)

    def test_repeated_ingredient_is_summed(self):
        set_recipe(self.burger, [(self.beef, '150'), (self.bun, '1'), (self.beef, '150')])
        self.set_stock(self.branch_a, self.beef, '250')

        burger = resolve_menu_item(self.restaurant, self.burger.id, self.branch_a)
        self.assertFalse(burger.ingredients_sufficient, "150g + 150g of Beef exceeds 250g")

    def test_branch_scoped_items(self):
        special = create_menu_item(self.restaurant, self.mains, 'Downtown Special', '15.00', branch=self.branch_a)

        self.assertIn(special.name, self.names(resolve_menu(self.restaurant, self.branch_a)))
        self.assertNotIn(special.name, self.names(resolve_menu(self.restaurant, self.branch_b)))
        self.assertNotIn(special.name, self.names(resolve_menu(self.restaurant)))

    def test_foreign_branch_is_not_found(self):
        other = Restaurant.objects.create(name='Other')
        foreign_branch = Branch.objects.create(restaurant=other, name='Elsewhere')
        with self.assertRaises(NotFound):
            resolve_menu(self.restaurant, foreign_branch)

    def test_filters(self):
        self.cola.show_on_website = False
        self.cola.save()

        website = resolve_menu(self.restaurant, self.branch_a, MenuFilters(show_on_website=True))
        self.assertNotIn('Cola', self.names(website))

        drinks = resolve_menu(self.restaurant, self.branch_a, MenuFilters(category_id=self.drinks.id))
        self.assertEqual(self.names(drinks), {'Cola'})

        self.set_stock(self.branch_a, self.beef, '0')
        available = resolve_menu(self.restaurant, self.branch_a, MenuFilters(only_available=True))
        self.assertNotIn('Burger', self.names(available))

    def test_menu_by_category(self):
        logger.info("Testing Resolver - grouped menu")
        groups = resolve_menu_by_category(self.restaurant, self.branch_a)
        self.assertEqual([g.category.name for g in groups], ['Mains', 'Drinks'], "Ordered by display_order")

        create_category(self.restaurant, 'Desserts', display_order=3)
        groups = resolve_menu_by_category(self.restaurant, self.branch_a, MenuFilters(exclude_empty=True))
        self.assertNotIn('Desserts', [g.category.name for g in groups], "Empty categories dropped")

        groups = resolve_menu_by_category(self.restaurant, self.branch_a)
        self.assertIn('Desserts', [g.category.name for g in groups])

    def test_branch_exclusive_items(self):
        set_override(self.branch_a, self.pizza, available=True)
        exclusive = self.names(branch_exclusive_items(self.restaurant, self.branch_a))
        # Cola is short at Uptown (no syrup row), Pizza has no override there
        self.assertEqual(exclusive, {'Pizza', 'Cola'})

    def test_restaurant_without_branches_uses_item_stock(self):
        logger.info("Testing Resolver - branchless restaurant reads legacy stock")
        diner = Restaurant.objects.create(name='Corner Diner')
        breakfast = create_category(diner, 'Breakfast')
        eggs = create_inventory_item(diner, 'Eggs', 'pcs', initial_stock=3)
        omelette = create_menu_item(diner, breakfast, 'Omelette', '5.00', consumptions=[(eggs, '2')])
        exclusive = create_menu_item(
            diner, breakfast, 'Pancakes', '4.00', available_everywhere=False,
        )

        item = resolve_menu_item(diner, omelette.id)
        self.assertTrue(item.effective_available)
        self.assertIn(exclusive.name, self.names(resolve_menu(diner)), "No branch, no exclusivity filter")

        eggs.current_stock = Decimal('1')
        eggs.save()
        self.assertFalse(resolve_menu_item(diner, omelette.id).effective_available)

    def test_unknown_item_resolves_to_none(self):
        self.assertIsNone(resolve_menu_item(self.restaurant, 999999, self.branch_a))
        self.assertIsNone(resolve_menu_item(self.restaurant, 'abc', self.branch_a))


class CatalogStoreTestCase(BaseTestCase):
    """Catalog writes: case-insensitive names, recipe ownership"""

    def test_duplicate_names_case_insensitive(self):
        with self.assertRaises(ValidationError):
            create_menu_item(self.restaurant, self.mains, 'burger', '5.00')
        with self.assertRaises(ValidationError):
            create_category(self.restaurant, 'MAINS')
        with self.assertRaises(ValidationError):
            create_inventory_item(self.restaurant, 'beef', 'g')

        # the same name is fine in a branch scope
        scoped = create_menu_item(self.restaurant, self.mains, 'Burger', '9.00', branch=self.branch_a)
        self.assertEqual(scoped.branch_id, self.branch_a.id)

    def test_recipe_must_use_own_ingredients(self):
        other = Restaurant.objects.create(name='Other')
        salt = create_inventory_item(other, 'Salt', 'g')
        with self.assertRaises(ValidationError):
            set_recipe(self.burger, [(salt, '1')])
        with self.assertRaises(ValidationError):
            set_recipe(self.burger, [(self.beef, '0')])

        self.assertEqual(len(self.burger.recipe()), 2, "Failed edits leave the recipe untouched")

    def test_invalid_unit(self):
        with self.assertRaises(ValidationError) as ctx:
            create_inventory_item(self.restaurant, 'Cheese', 'lbs')
        self.assertIn('unit', ctx.exception.errors)

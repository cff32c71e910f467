from ._views.EffectiveMenuView import (
    PublicMenuView,
    PublicMenuByCategoryView,
    PublicMenuItemView,
    PublicRestaurantMenuView,
)
from ._views.BranchMenuItemView import BranchMenuItemView

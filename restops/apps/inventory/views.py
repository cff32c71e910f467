from ._views.StockView import StockView, BranchInventoryCopyView

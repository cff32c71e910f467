from ._views.BranchView import BranchView, BranchRestoreView

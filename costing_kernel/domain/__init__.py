"""Pure domain helpers for the costing kernel (time and rounding)."""

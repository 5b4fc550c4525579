"""Network endpoint simulator standing in for an ATM-style transaction host."""

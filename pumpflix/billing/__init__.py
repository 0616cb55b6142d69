"""Subscriptions, plans and invoices."""

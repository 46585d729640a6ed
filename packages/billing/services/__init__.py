"""Billing services."""

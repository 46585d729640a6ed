"""
Billing package - tier policy, Stripe subscriptions and webhook sync.

Usage metering and reconciliation live in ``packages.metering``.
"""

"""Payments module: Stripe PaymentIntents for computed shipping fees."""

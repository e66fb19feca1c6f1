"""
Module 'payments' (feature-first): tarification du panier et ouverture des sessions Stripe.
"""

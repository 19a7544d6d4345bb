"""
Checkout Infrastructure Layer

SQLAlchemy repositories and external gateway adapters.
"""

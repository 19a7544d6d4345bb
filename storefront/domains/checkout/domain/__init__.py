"""
Checkout domain: pure pricing rules and the order state machine.
"""

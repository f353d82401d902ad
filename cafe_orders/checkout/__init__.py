"""
Checkout: payment method -> tip -> split -> confirm.

The orchestrator owns the step sequence. form.py and conversation.py are the
two surfaces that drive it; both compute bills through services.billing.
"""

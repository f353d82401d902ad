"""
Cafe Orders: checkout and order lifecycle service.

Customers check out a cart through a form or a conversation; the resulting
order then moves through Placed, In Preparation and Completed on timers that
staff can pause, resume and override.
"""

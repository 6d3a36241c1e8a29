"""content/ -- Content items with soft-delete visibility.

Layer rule: content/ imports only core/, stdlib, and third-party libraries.
It does NOT import from api/, web/, or auth/.
"""

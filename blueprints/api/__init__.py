"""
API blueprint package.
JSON endpoints for the booking engine, split by entity:
- routes.py - Blueprint and health check
- reservations.py - Reservation CRUD, status changes, recurring series
- service_orders.py - Service orders and their items
- errors.py - Error classification at the HTTP boundary
"""

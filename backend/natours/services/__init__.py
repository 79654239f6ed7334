"""
Services Module

Domain logic that sits between the routers and the ORM:
- query_features: query-string -> filter/sort/fields/pagination
- handler_factory: generic CRUD endpoints over Entity descriptors
- tour_service / review_service / user_service: entities, hooks, aggregations
- geo: spherical distance helpers for the geo endpoints
- email: SMTP delivery of password reset mails
"""

"""Service layer: business rules and transaction boundaries."""

"""TheraSoul therapy marketplace backend."""

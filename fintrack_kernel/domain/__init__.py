"""Pure domain layer: DTOs, policies, clock and input validation."""

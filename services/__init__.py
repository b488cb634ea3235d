"""
Service layer: business rules and workflows shared by the blueprints and scripts.

Every mutating function takes an explicit ``Actor`` and raises the error kinds
defined in ``services.errors``.
"""

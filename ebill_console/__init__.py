"""
eBill console package.

A command-line client for the electricity e-billing backend:
- app.session: durable session storage, session provider and route guard
- app.adapters: request gateway and backend clients
- app.domain: DTOs, record forms and view state
- app.navigation / app.console / app.main: wiring and the ``ebill`` CLI
"""

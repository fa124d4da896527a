"""
Core domain layer of AutoLease (the hexagon).

Pure business logic with no framework imports:
- users, sales_agents, cars, offers, applications bounded contexts
- shared ports, errors, clock and pagination
- fully testable without a database
"""

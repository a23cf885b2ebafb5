# Services package init
"""
Switchboard — Services Layer
==============================

What:  Business logic over a caller-supplied AsyncSession.

Service Inventory:
    - UserService: create / get / list / update users in their readable form
"""

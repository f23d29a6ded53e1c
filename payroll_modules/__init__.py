"""
payroll_modules -- ERP glue around the pure payroll engines.

Each subpackage follows the same layout: ``models.py`` (frozen DTOs),
``orm.py`` (SQLAlchemy persistence), ``helpers.py`` (pure request
helpers) and ``service.py`` (the transaction-owning public API).
"""

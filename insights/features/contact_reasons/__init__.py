"""
Contact-reasons dashboard feature package.

Keeps every layer of the contact-reasons report together: domain models,
the aggregation pipeline, the repository, the report service and the API
router. Import the submodules directly; this package deliberately does not
re-export them so the classification service can depend on the domain
models without a circular import.
"""

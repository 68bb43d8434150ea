"""Domain layer for coarecon.

Services are imported from their modules directly; this package stays empty
so that the database layer can import ``coarecon.domain.entities`` without
pulling the services (which depend on the database layer) along with it.
"""

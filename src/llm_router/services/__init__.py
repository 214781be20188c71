"""Router services: catalog, selection, execution and accounting."""

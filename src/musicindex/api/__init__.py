"""HTTP API: routers, schemas and exception handlers."""

"""FastAPI application exposing the search services over HTTP."""

"""
Social-preview gateway for the MyMaps web app.

This package provides a FastAPI application that sits in front of the
static site export and answers link-preview crawlers with Open Graph
metadata read from Firestore, while passing browser traffic through.
"""

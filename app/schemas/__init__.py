"""
Banco de Horas - Schemas Package

Pydantic schemas for request/response validation.
"""

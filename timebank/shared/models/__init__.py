# timebank/shared/models/__init__.py
"""
Pydantic модели запросов и ответов API.
"""

"""
TimeBank: обмен временем между пользователями.
"""

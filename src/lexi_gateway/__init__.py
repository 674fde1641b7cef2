"""Lexi gateway: мультипровайдерный chat-completion клиент для приложения-словаря."""

__version__ = "0.1.0"

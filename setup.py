#!/usr/bin/env python3
"""
Setup script for gosbot
"""

from setuptools import setup, find_packages

setup(
    name="gosbot",
    version="0.1.0",
    description="Client for the bot.gosuslugi.ru chatbot Socket.IO WebSocket",
    packages=find_packages(include=["gosbot", "gosbot.*"]),
    install_requires=[
        "websockets>=15.0",
        "httpx>=0.27",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.10",
    entry_points={
        'console_scripts': [
            'gosbot=gosbot.client.cli:main',
        ],
    },
)

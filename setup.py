from setuptools import setup, find_packages

setup(
    name="rtbridge",
    version="0.1.0",
    description="WebSocket relay between browser clients and realtime conversational APIs",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["examples*", "tests*"]),
    install_requires=[
        "openai[realtime]>=1.55.3",
        "fastapi>=0.111.0",
        "uvicorn>=0.30.0",
        "pydantic>=2.7.0",
        "pydantic-settings>=2.3.0"
    ],
    extras_require={
        "test": ["pytest>=8.0.0", "pytest-asyncio>=0.23.0", "numpy>=2.2.3", "httpx>=0.27.0"]
    },
    entry_points={
        "console_scripts": ["rtbridge=rtbridge.main:run"]
    },
    classifiers=[
        "Programming Language :: Python :: 3"
    ]
)

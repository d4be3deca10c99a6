"""Setup file for qaserve package."""

from setuptools import setup

setup(
    name="qaserve",
    version="0.1.0",
    description="Question answering pipeline engine with a pooled WebSocket server",
    author="Your Name",
    packages=["qaserve", "qaserve.stages"],
    package_dir={"qaserve": "."},
    python_requires=">=3.8",
    install_requires=[
        "requests",
        "beautifulsoup4",
        "python-dotenv",
        "numpy",
        "fastapi",
        "uvicorn",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "qaserve=qaserve.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)

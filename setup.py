from setuptools import setup, find_packages

setup(
    name="hookrunner",
    version="0.1.0",
    description="hookrunner - run scripts from disk in disposable habitats when a webhook fires",
    author="hookrunner team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "typer>=0.16.0",
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "python-dotenv>=1.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.3.2",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    entry_points={
        "console_scripts": [
            "hookrunner=hookrunner.apps.cli.app:app",
        ],
    },
)

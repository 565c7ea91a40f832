from setuptools import setup, find_packages

setup(
    name="sqldesk",
    version="1.0.0",
    description="SQLDesk — password-gated remote SQL console with an AI query assistant",
    packages=find_packages(exclude=["tests*", "*.egg-info"]),
    py_modules=["main", "config", "simple_cli"],
    package_data={"ui": ["*.tcss"]},
    python_requires=">=3.10",
    install_requires=[
        "textual>=0.47.0",
        "rich>=13.7.0",
        "httpx>=0.25.0",
        "langchain-community>=0.0.20",
        "langchain-core>=0.1.0",
        "langchain-openai>=0.0.5",
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "loguru>=0.7.2",
        "prompt_toolkit>=3.0.43",
        "click>=8.1.7",
        "tabulate>=0.9.0",
        "openpyxl>=3.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "sqldesk=main:cli",
        ],
    },
)

from setuptools import setup, find_packages

setup(
    name="swarm_agents",
    version="0.1.0",
    description="Lightweight multi-agent orchestration: tools, handoffs, streaming and concurrent runs",
    packages=find_packages(exclude=["tests", "examples"]),
    python_requires=">=3.8",
    install_requires=[
        "openai",
        "anthropic",
        "tenacity"
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
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

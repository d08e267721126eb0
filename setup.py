from setuptools import find_packages, setup

setup(
    name="arkutil",
    version="0.3.0",
    description="Shared CLI infrastructure: polling directory watcher, git versions, console logging and text wrapping",
    author="Araray Velho",
    packages=find_packages(exclude=["tests", "examples"]),
    install_requires=[
        "click",
        "toml",
        "pyyaml",
        "python-daemon",
        "rich",
        "psutil"
    ],
    extras_require={
        "test": ["pytest"]
    },
    entry_points={
        "console_scripts": [
            "arkutil=arkutil.cli:main"
        ]
    },
)

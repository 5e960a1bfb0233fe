from setuptools import setup, find_namespace_packages

setup(
    name="media-tagger",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["media_tagger", "media_tagger.*"]),
    install_requires=[
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "media-tagger=media_tagger.cli:main",
        ],
    },
    python_requires=">=3.10",
)

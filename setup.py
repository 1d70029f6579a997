from setuptools import setup
import os

VERSION = "0.1"


def get_long_description():
    with open(
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "README.md"),
        encoding="utf8",
    ) as fp:
        return fp.read()


setup(
    name="datasette-search-engine",
    description="Crawl websites into a Datasette database and search them with morphology-aware ranking.",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="Apache License, Version 2.0",
    classifiers=[
        "Framework :: Datasette",
        "License :: OSI Approved :: Apache Software License"
    ],
    version=VERSION,
    packages=["datasette_search_engine", "datasette_search_engine.plugins"],
    entry_points={"datasette": ["search_engine = datasette_search_engine"]},
    install_requires=["datasette>=0.64,<1.0", "selectolax<1.0", "pluggy", "httpx", "more-itertools>=9.1", "pymorphy3", "nltk"],
    extras_require={"test": ["wheel", "pytest", "pytest-asyncio", "pytest-watch", "coverage"]},
    python_requires=">=3.8",
)

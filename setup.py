"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/shoal-build/shoal"
KEYWORDS = "c c++ build compiler incremental gcc clang build-system"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        maintainer="Shoal Developers",
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)

"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/opencv/opencv"
KEYWORDS = "opencv cmake build cache native library static source-build"
HERE = os.path.dirname(os.path.abspath(__file__))

# The local version segment pins the OpenCV release that gets built.
VERSION = "0.1.0+opencv4.9.0"


if __name__ == "__main__":
    setup(
        name="opencv-builder",
        version=VERSION,
        description="Builds a pinned OpenCV release from source into a version-scoped cache",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages(where="src"),
        python_requires=">=3.9",
        install_requires=[
            "requests",
            "tqdm",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "opencv-build=opencv_builder.cli:main",
            ],
        },
        include_package_data=True)

from setuptools import setup, find_packages

setup(
    name="knobfinder",
    version="1.0.0",
    description="Knob and button detection on faceplate photographs",
    author="Studio Recall",
    packages=find_packages(include=["knobfinder", "knobfinder.*"]),
    install_requires=[
        "opencv-python>=4.8.0",
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "scikit-image>=0.21.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
)

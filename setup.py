
from setuptools import setup, find_packages

setup(
    name="pyqp",
    version="0.1.0",
    packages=find_packages(exclude=["test", "test.*"]),
    python_requires=">=3.10",
    install_requires=["numpy", "scipy"],
    extras_require={"test": ["pytest"]},
    author="Your Name",
    description="Assembly, balancing and solution bookkeeping for linear and quadratic programs",
    license="MIT",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License"
    ]
)

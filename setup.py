from pathlib import Path

from setuptools import find_packages
from setuptools import setup


HERE = Path(__file__).resolve().parent


def load_module_from_project_file(mod_name, fname):
    """
    Helper used to load a module from a file in this project

    DEV: Loading this way will by-pass loading all parent modules
         e.g. importing `eventspan._version` will load `eventspan/__init__.py`
         which has side effects like configuring the loggers
    """
    fpath = HERE / fname

    import importlib.util

    spec = importlib.util.spec_from_file_location(mod_name, fpath)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


setup(
    name="eventspan",
    version=load_module_from_project_file("eventspan._version", "eventspan/_version.py").__version__,
    description="Correlate instrumentation notifications into spans and derive request timing metrics",
    packages=find_packages(exclude=["tests*"]),
    zip_safe=False,
    python_requires=">=3.9",
    install_requires=[
        "envier~=0.6",
        "wrapt>=1.14",
    ],
    extras_require={
        "test": [
            "pytest",
            "mock",
            "hypothesis",
            "webtest",
        ],
    },
)

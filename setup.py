import os

from setuptools import setup


def rel(*xs):
    return os.path.join(os.path.abspath(os.path.dirname(__file__)), *xs)


with open(rel("README.md")) as f:
    long_description = f.read()


with open(rel("queue_throttler", "__init__.py")) as f:
    version_marker = "__version__ = "
    for line in f:
        if line.startswith(version_marker):
            _, version = line.split(version_marker)
            version = version.strip().strip('"')
            break
    else:
        raise RuntimeError("Version marker not found.")


dependencies = ["prometheus-client>=0.2", "redis~=5.0"]

extra_dependencies = {}

extra_dependencies["dev"] = [
    # Linting
    "flake8",
    "flake8-bugbear",
    "flake8-quotes",
    "isort",
    "black~=23.12",
    "mypy~=1.10.0",
    "types-redis",
    # Misc
    "pre-commit",
    "bumpversion",
    "hiredis",
    "twine",
    # Testing
    "pytest",
    "pytest-cov",
    "pytest-timeout",
    "freezegun",
]

setup(
    name="queue-throttler",
    version=version,
    author="Wiremind",
    author_email="dev@wiremind.io",
    description="Distributed rate and concurrency limits for job queue workers.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=[
        "queue_throttler",
        "queue_throttler.helpers",
        "queue_throttler.store",
        "queue_throttler.store.backends",
    ],
    package_data={"queue_throttler": ["py.typed"]},
    include_package_data=True,
    install_requires=dependencies,
    python_requires=">=3.8",
    extras_require=extra_dependencies,
    entry_points={"console_scripts": ["queue-throttler = queue_throttler.__main__:main"]},
    classifiers=[
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: System :: Distributed Computing",
        "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
    ],
)

"""Setup script for the TeamSync calendar server."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements; pytest tooling goes to the "test" extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue
        if "pytest" in line:
            test_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="teamsync",
    version="1.0.0",
    description="Team scheduling calendar with recurring events, series edits and ICS export",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="TeamSync Team",
    packages=find_packages(include=["teamsync", "teamsync.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: End Users/Desktop",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
        "Framework :: aiohttp",
    ],
    keywords="calendar scheduling recurring-events rrule ics team aiohttp",
    entry_points={
        "console_scripts": [
            "teamsync=teamsync.__main__:main",
        ],
    },
    zip_safe=False,
)

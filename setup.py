from pathlib import Path
from setuptools import setup, find_packages


def read_readme() -> str:
    readme_path = Path(__file__).resolve().parent / "README.md"
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""


setup(
    name="embedsrc",
    version="1.0.0",
    packages=find_packages(exclude=("tests", "debug")),
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "color": ["colorama>=0.4.6"],
    },
    python_requires=">=3.10",
    description="Decoder for obfuscated embed video-source payloads",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
)

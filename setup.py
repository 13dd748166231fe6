"""Setup file for SceneKit project."""

from setuptools import find_packages, setup

setup(
    name="scenekit",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy",
        "pandas",
        "opencv-python",
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "python-dotenv",
        "google-cloud-storage",
        "google-genai",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
        ],
    },
    python_requires=">=3.10",
)

import setuptools

INSTALL_REQUIRES = [
    'torch>=1.13',
    'numpy>=1.17',
]

TEST_REQUIRES = [
    # testing and coverage
    'pytest', 'coverage', 'pytest-cov',
]

DOCS_REQUIRES = [
    'sphinx>=2.0',
    'sphinx_rtd_theme',
]

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="pytorch_rl_engine",
    license="Apache 2.0",
    version="0.0.1",
    author="Michael Janschek",
    author_email="michael.janschek@hhu.de",
    description="Replay memories and DQN/PPO optimization in PyTorch",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests", "tests.*", "docs"]),
    python_requires=">=3.7",
    install_requires=INSTALL_REQUIRES,
    extras_require={
        'test': TEST_REQUIRES + INSTALL_REQUIRES,
        'docs': DOCS_REQUIRES + TEST_REQUIRES + INSTALL_REQUIRES,
    },
    classifiers=[
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
    ],
)

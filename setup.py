import setuptools

setuptools.setup(
    name='causalges',
    version='0.1a.1',
    description='Greedy equivalence search for causal structure learning',
    long_description='causalges is a Python package for learning causal graphs with Fast Greedy Equivalence Search.',
    author='Chandler Squires',
    author_email='chandlersquires18@gmail.com',
    packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    zip_safe=False,
    classifiers=[
        'Topic :: Scientific/Engineering',
        'Topic :: Scientific/Engineering :: Mathematics',
        'Topic :: Scientific/Engineering :: Artificial Intelligence',
    ],
    install_requires=[
        'scipy',
        'numpy',
        'networkx',
        'pandas',
        'joblib',
        'tqdm',
    ],
    extras_require={
        'test': ['pytest'],
    }
)

from setuptools import find_packages, setup


extras_require = {}

extras_require["test"] = [
    'pytest>=7.4,<9.0',
    'pytest-mock>=3.12,<4.0',
]

extras_require["all"] = [
    *extras_require["test"],
]


setup(
    name='rolodex',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Relationship consistency engine for organizations, people and assignments',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    install_requires=[
        'PyMongo>=4.6.3,<5.0',
        'python-dotenv>=1.0.0,<2.0',
        'python-dateutil>=2.8.2,<3.0',
    ],
    extras_require=extras_require,
    python_requires=">=3.10"
)

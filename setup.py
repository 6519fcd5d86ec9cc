import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name='django_migration_actions',
    version='0.1.0',
    author='Aleksey Yakovlev',
    author_email='a_yakovlev@gcore.lu',
    description='GitHub Actions to check django migrations and keep a database schema dump up to date',
    long_description=long_description,
    long_description_content_type='text/markdown',
    packages=setuptools.find_packages(exclude=('tests', 'tests.*')),
    classifiers=(
        'Programming Language :: Python :: 3',
        'License :: WTFPL License',
        'Operating System :: OS Independent',
        'Framework :: Django',
        'Database :: PostgreSQL',
    ),
    python_requires='>=3.8',
    install_requires=[
        'GitPython>=3.1',
        'Django>=3.2',
        'requests>=2.25',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-django',
            'responses',
        ],
    },
)

from setuptools import setup, find_namespace_packages

setup(
    name='media-collection',
    version='0.1',
    packages=find_namespace_packages(include=['src', 'src.*']),
    py_modules=['server', 'app_config', 'driver'],
    python_requires='>=3.10',
    install_requires=[
        'flask',
        'flask_cors',
        'loguru',
        'setproctitle',
        'waitress==3.0.0',
        'dacite',
        'pyyaml',
        'requests',
    ],
    extras_require={
        'test': [
            'pytest',
            'python-dotenv',
        ],
    },
)

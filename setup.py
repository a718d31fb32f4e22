"""
Packaging for the arduinoconn serial connector.

Tests live beside the code in *_test.py modules and are run with `pytest`,
after installing the test extra: `pip install -e .[test]`
"""

from setuptools import setup


setup(
    name='arduinoconn',
    version='0.0.1',
    description='Newline-delimited text over a serial port to an Arduino-class device.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['arduinoconn', 'arduinoconn.conduit', 'arduinoconn.config', 'arduinoconn.connector',
              'arduinoconn.protocol', 'arduinoconn.support'],
    package_data={'arduinoconn.config': ['*.cfg']},
    install_requires=[
        'pyserial>=3.4',
        'configobj>=5.0.6',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest', 'timeout-decorator'],
    },
    zip_safe=False,
)

from setuptools import setup

setup(
    name='txoauth2client',
    version='1.0.0',
    author='Sebastian Scholz',
    author_email='abestanis.gc@gmail.com',
    description='A module that allows persisting OAuth2 authorized clients with twisted',
    long_description='A module that stores the access tokens a twisted server obtained as an '
                     'OAuth2 client, keyed by client registration and resource owner, '
                     'so they can be reused across requests.',
    license='MIT',
    keywords=['OAuth2', 'twisted', 'client'],
    packages=['txoauth2client'],
    python_requires='>=3.6',
    install_requires=['twisted', 'zope.interface'],
    extras_require={'test': ['pytest']},
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Security',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Framework :: Twisted',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
    ],
)

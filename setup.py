from setuptools import setup

setup(
    name='sensornet-gateway-py',
    version='0.1.0',
    description='A gateway for sensor networks that speak the semicolon line protocol over serial, TCP or MQTT.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['sensornet', 'sensornet.conduit', 'sensornet.connection', 'sensornet.gateway',
              'sensornet.protocol', 'sensornet.sensors', 'sensornet.support'],
    package_data={'sensornet.gateway': ['gateway.schema.cfg']},
    python_requires='>=3.8',
    install_requires=[
        'pyserial>=3.4',
        'configobj>=5.0.8',
        'paho-mqtt>=2.0',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest>=2.0', 'timeout-decorator'],
    },
    entry_points={
        'console_scripts': ['sensornet-gateway=sensornet.runner:main'],
    },
    zip_safe=False,
)

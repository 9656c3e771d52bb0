"""
Gateway services

- device/ - Modbus connections, invocations, polling, serial ports
- bus/ - MQTT command bus, dispatcher and the gateway service
"""

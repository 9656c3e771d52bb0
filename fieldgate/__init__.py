"""
fieldgate - MQTT command gateway for Modbus RTU/TCP field devices
"""

__version__ = "0.1.0"

from binascii import hexlify


def reverse_dict(data):
    return {value: key for key, value in data.items()}


def hexstr(data):
    """Return the lowercase hexadecimal text of a byte sequence."""
    return hexlify(data).decode('ascii')

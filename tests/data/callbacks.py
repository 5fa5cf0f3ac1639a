import threading


def main(value, callback):
    # Report from another thread so the caller has to wait for the callback.
    threading.Timer(0.01, callback, args=(None, value)).start()


def fail(value, callback):
    callback(ValueError("bad value: %s" % value))

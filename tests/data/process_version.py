import sys


def main():
    v = sys.version_info
    level = {"alpha": "a", "beta": "b", "candidate": "rc"}.get(v.releaselevel)
    text = "%d.%d.%d" % v[:3]
    if level:
        text += "%s%d" % (level, v.serial)
    return text


def executable():
    return sys.executable

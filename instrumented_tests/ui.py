import sys

from colorama import Fore, Style, init

init(autoreset=True)

def _tag(avd_name=None, serial=None):
    names = [name for name in (avd_name, serial) if name is not None]
    if not names:
        return 'InstrumentedTests'
    return 'InstrumentedTests[{}]'.format(', '.join(names))

def message(text, avd_name=None, serial=None):
    print('{}: {}'.format(_tag(avd_name, serial), text))

def important(text, avd_name=None, serial=None):
    print('{}{}: {}'.format(Fore.YELLOW, _tag(avd_name, serial), text))

def success(text, avd_name=None, serial=None):
    print('{}{}: {}'.format(Fore.GREEN, _tag(avd_name, serial), text))

def error(text, avd_name=None, serial=None):
    print('{}{}: {}'.format(Fore.RED, _tag(avd_name, serial), text), file=sys.stderr)

def output_lines(lines, prefix='O: ', file=None):
    if file is None:
        file = sys.stdout
    for line in lines:
        print('{}{}{}'.format(Style.DIM, prefix, line.rstrip()), file=file)

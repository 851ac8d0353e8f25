# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

from os.path import join, dirname, realpath
import urllib.request
import urllib.error
import importlib.util


def data_dir():
    return join(dirname(realpath(__file__)), "data")


### Functions for conditional test skips ###

tested_urls = {}
def cannot_connect_to(url):
    if url not in tested_urls:
        try:
            urllib.request.urlopen(url, timeout=10)
            tested_urls[url] = False
        except urllib.error.URLError:
            tested_urls[url] = True
    return tested_urls[url]

def cannot_import(module):
    return importlib.util.find_spec(module) is None

import argparse


arg_parser = argparse.ArgumentParser(prog='registry_resolver')
arg_parser.add_argument('--config', help='A YAML file with name defaults and registry credentials')
arg_parser.add_argument('--docker-auth-file', help='A path file containing '
                                                   'Docker username and access token/password')
arg_parser.add_argument('--quay-token-file', help='A file containing Quay access token')
arg_parser.add_argument('--default-host', help='Registry host assumed for unqualified repositories')
arg_parser.add_argument('--default-namespace', help='Namespace assumed for unqualified repositories')
arg_parser.add_argument('--log-level', help='Logging level, e.g. DEBUG or WARNING')
arg_parser.add_argument('--json', help='Print images as JSON', action='store_true')

commands = arg_parser.add_subparsers(dest='command', required=True)

list_parser = commands.add_parser('list', help='List all images of a repository, newest first')
list_parser.add_argument('repository', help='Repository reference, e.g. helloworld or quay.io/foo/bar')

get_parser = commands.add_parser('get', help='Resolve a single tagged image')
get_parser.add_argument('reference', help='Image reference with tag, e.g. helloworld:1.0')


__all__ = ['arg_parser']

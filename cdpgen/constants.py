"""Constants for the cdpgen package."""

# Java toolchain used by the generated pom.xml
JDK_VERSION = '17'
JACKSON_VERSION = '2.18.2'
MAVEN_COMPILER_VERSION = '3.13.0'

# Synthesized type names
RESULT_SUFFIX = 'Result'
ARRAY_ITEM_SUFFIX = 'Item'
MAX_NAME_SUFFIX = 99

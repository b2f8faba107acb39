# generate_delta.py
# Stage the force-app delta since the last deployment into delta/package
# and build package.xml (+ destructiveChanges.xml for deploy environments).
from sfdelta.cli import generate_delta_main

if __name__ == "__main__":
    generate_delta_main()

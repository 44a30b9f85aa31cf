"""Query services, each answering names under its own suffix."""
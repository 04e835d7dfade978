# Django's MySQL backend imports MySQLdb; PyMySQL provides a compatible driver.
import pymysql

pymysql.install_as_MySQLdb()

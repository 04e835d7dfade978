from django.urls import path

from . import views


app_name = "ledger"

urlpatterns = [
    path("eligibility/", views.eligibility, name="eligibility"),
    path("register/", views.register, name="register"),
]
